from pickup_intake.matching_engine.resolver import EntityResolver
from pickup_intake.matching_engine.similarity import similarity

__all__ = ["EntityResolver", "similarity"]
