from .sources import (
    TokenSource,
    context_token_source,
    form_token_source,
    header_source,
    header_token_source,
    set_context_token,
)
from .validator import CSRFValidator

__all__ = [
    "CSRFValidator",
    "TokenSource",
    "context_token_source",
    "form_token_source",
    "header_source",
    "header_token_source",
    "set_context_token",
]
