"""parkcam - parking-spot camera agent.

Polls a coordinator for capture requests, photographs the spot, publishes the
image to Cloud Storage and reports its URL back.
"""

__version__ = "0.1.0"
