"""Natural-language event administration backed by Gemini tool calling."""
