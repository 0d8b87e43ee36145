"""Daily ranking and weekly newsletter pipeline."""
