from .client import ParserAdapter, ParserError
from .models import ParserContext, ParserInput, ParserMetadata, ParserOutput

__all__ = [
    "ParserAdapter",
    "ParserContext",
    "ParserError",
    "ParserInput",
    "ParserMetadata",
    "ParserOutput",
]
