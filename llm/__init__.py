from llm.gemini import GeminiClient, GeminiError, extract_json

__all__ = ["GeminiClient", "GeminiError", "extract_json"]
