"""Upstream API adapters and the collaborators built on them."""
