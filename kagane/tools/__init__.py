"""Command line tools for the Kagane page engine."""
