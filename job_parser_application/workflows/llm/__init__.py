from .parser import LLMParser, parse_json_response, structure_from_response

__all__ = ["LLMParser", "parse_json_response", "structure_from_response"]
