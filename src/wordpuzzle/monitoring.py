"""Monitoring configuration for the puzzle."""
from prometheus_client import Counter, Histogram, start_http_server

# Gameplay metrics
placements = Counter(
    "wordpuzzle_placements_total",
    "Cluster placement attempts",
    ["result"],
)

removals = Counter(
    "wordpuzzle_removals_total",
    "Cluster removal attempts",
    ["result"],
)

words_completed = Counter(
    "wordpuzzle_words_completed_total",
    "Target words reconstructed during sessions",
)

levels_completed = Counter(
    "wordpuzzle_levels_completed_total",
    "Puzzle sessions that reached the completed state",
)

level_completion_time = Histogram(
    "wordpuzzle_level_completion_seconds",
    "Wall-clock time from session start to level completion",
    buckets=[15, 30, 60, 120, 300, 600],  # 15s .. 10min
)

# Level loading metrics
level_load_failures = Counter(
    "wordpuzzle_level_load_failures_total",
    "Level files that could not be loaded",
    ["reason"],
)

# Persistence metrics
progress_saves = Counter(
    "wordpuzzle_progress_saves_total",
    "Progress document save attempts",
    ["result"],
)

progress_load_fallbacks = Counter(
    "wordpuzzle_progress_load_fallbacks_total",
    "Progress loads that fell back to a fresh document",
    ["reason"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
