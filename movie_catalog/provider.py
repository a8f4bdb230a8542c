"""
Registry of external movie providers.

Every provider exposes `get_provider_name()`, `get_genres()` and
`get_movies(page)`; TMDB is the default.
"""

from typing import Dict, Iterable, List, Optional

from .exceptions import ProviderError
from .models import GenreData, MoviePage


class MoviesProvider:
    """Dispatches genre and movie lookups to a named provider."""

    DEFAULT_PROVIDER = "tmdb"

    def __init__(self, providers: Iterable):
        self.providers: Dict[str, object] = {}
        for provider in providers:
            self.providers[provider.get_provider_name()] = provider

        if self.DEFAULT_PROVIDER not in self.providers:
            raise ValueError(f"Default provider '{self.DEFAULT_PROVIDER}' is not registered")

    @property
    def default_provider(self) -> str:
        return self.DEFAULT_PROVIDER

    def _get_provider(self, provider_name: Optional[str] = None):
        name = provider_name or self.DEFAULT_PROVIDER
        provider = self.providers.get(name)
        if provider is None:
            raise ProviderError(f"Provider '{name}' is not registered")
        return provider

    def get_genres(self, provider_name: Optional[str] = None) -> List[GenreData]:
        return self._get_provider(provider_name).get_genres()

    def get_movies(self, page: int = 1, provider_name: Optional[str] = None) -> MoviePage:
        return self._get_provider(provider_name).get_movies(page)
