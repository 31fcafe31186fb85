"""Orchestration core: fingerprinting, caching, extraction and build runners."""
