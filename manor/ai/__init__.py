"""AI components: minimax search, parallel search and cancellation."""

from .cancellation import CancellationToken, NeverCancel, cancel_after
from .search import SearchConfig, SearchResult, TreeSearch, find_best_turn, search_with_config
from .parallel import SharedAlpha, find_best_turn_parallel
