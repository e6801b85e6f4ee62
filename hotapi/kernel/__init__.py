"""Kernel services shared by the registry: config, errors, logging, paths."""
