"""Observable values and stream combinators."""

from showsync.reactive.flow import StateFlow
from showsync.reactive.loading import ObservableLoadingCounter
from showsync.reactive.operators import debounce, distinct_until_changed

__all__ = ["ObservableLoadingCounter", "StateFlow", "debounce", "distinct_until_changed"]
