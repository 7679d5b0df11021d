"""YAML world seeds."""

from atlas_engine.seeding.loader import SeedReport, WorldSeed, apply_seed, load_seed

__all__ = ["SeedReport", "WorldSeed", "apply_seed", "load_seed"]
