from src.infrastructure.barter.in_memory import InMemoryLineageRepository

__all__ = ["InMemoryLineageRepository"]
