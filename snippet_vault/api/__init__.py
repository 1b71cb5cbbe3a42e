"""HTTP surface for the snippet vault."""
