from searchsuggest.models.analytics import SearchEvent
from searchsuggest.models.api_key import ApiKey
from searchsuggest.models.page import SearchPage
from searchsuggest.models.suggestion import Suggestion

__all__ = [
    "SearchPage",
    "SearchEvent",
    "Suggestion",
    "ApiKey",
]
