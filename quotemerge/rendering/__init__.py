"""Page copying, overlays and token replacement."""
