"""Version 1 of the OpenAI-compatible gateway API."""
