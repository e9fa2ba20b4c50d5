"""prepdeck - spaced-repetition vocabulary mastery for SSAT/SAT prep."""

__version__ = "1.0.0"
