import time

from prometheus_client import Counter, Histogram

# Define metrics
board_starts_counter = Counter("jeopardy_board_starts_total", "Number of board starts", ["result"])  # 'success', 'failure'

board_load_latency = Histogram(
    "jeopardy_board_load_seconds",
    "Time taken to acquire a complete board",
    buckets=(0.5, 1, 2, 5, 10, 20, 30, 60, 120, float('inf')),
)

# Category id acquisition outcomes
category_id_attempts_counter = Counter(
    "jeopardy_category_id_attempts_total",
    "Number of random category ids tried",
    ["outcome"],  # 'accepted', 'too_few_clues', 'duplicate'
)

clue_reveals_counter = Counter("jeopardy_clue_reveals_total", "Number of clue reveals", ["state"])  # 'question', 'answer'

# Trivia provider requests
provider_requests_counter = Counter("jeopardy_provider_requests_total", "Number of trivia provider requests", ["status"])

provider_request_latency = Histogram("jeopardy_provider_request_latency_seconds", "Trivia provider request latency in seconds")

# API request latency
api_request_latency = Histogram("jeopardy_api_request_latency_seconds", "API request latency in seconds", ["endpoint"])

# API request counter
api_request_counter = Counter("jeopardy_api_requests_total", "Number of API requests", ["endpoint", "status"])


# Helper function to track API request latency
def track_request_latency(endpoint):
    start_time = time.time()

    def stop_timer(status="success"):
        latency = time.time() - start_time
        api_request_latency.labels(endpoint=endpoint).observe(latency)
        api_request_counter.labels(endpoint=endpoint, status=status).inc()

    return stop_timer


# Record the outcome of a board start
def record_board_start(result, duration=None):
    board_starts_counter.labels(result=result).inc()
    if duration is not None:
        board_load_latency.observe(duration)


def record_category_id_attempt(outcome):
    """Record whether a random category id was accepted or why it was rejected."""
    category_id_attempts_counter.labels(outcome=outcome).inc()


def record_clue_reveal(state):
    clue_reveals_counter.labels(state=state).inc()


def record_provider_request(status, duration):
    """
    Record a single request to the trivia provider.

    Args:
        status (str): 'success', 'cache_hit' or 'error'
        duration (float): Request duration in seconds
    """
    provider_requests_counter.labels(status=status).inc()
    provider_request_latency.observe(duration)
