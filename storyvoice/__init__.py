"""Character voice narration service."""
