from ivrmap.extraction.llm_extractor import LLMExtractor

__all__ = ["LLMExtractor"]
