"""Command groups for the raindrop-sync CLI."""
