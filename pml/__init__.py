"""Activity-quality classification report for the Weight Lifting Exercises sensor data."""

__version__ = "0.1.0"
