"""
Workflow Graph constants - sentinel node names and node defaults.
"""

# Reserved node names marking the entry and exit of every run
START = "__START__"
END = "__END__"

SENTINELS = frozenset([START, END])

DEFAULT_RETRY_COUNT = 0
DEFAULT_RETRY_DELAY = 0.1  # seconds, flat per retry
