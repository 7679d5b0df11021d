"""Backing-store contracts and their in-memory and SQLite implementations.

Services depend only on the protocols in :mod:`atlas_engine.store.contracts`;
pick an implementation with :func:`atlas_engine.services.build_services`.
"""
