"""Business process compiler for Camunda and Bonita targets."""

__version__ = "0.1.0"
