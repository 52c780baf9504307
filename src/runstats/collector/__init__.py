"""Runtime metric groups, sampler and scheduler."""
