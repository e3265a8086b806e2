"""Provider implementations: OpenAI-compatible chat, Gemini, PageIndex."""
