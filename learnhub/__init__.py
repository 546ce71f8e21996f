"""LearnHub: course enrollment, progress and purchase fulfillment API."""

__version__ = "0.1.0"
