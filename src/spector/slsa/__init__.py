"""SLSA provenance predicates."""
