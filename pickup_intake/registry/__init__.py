from pickup_intake.registry.client import Registry, RegistryClient

__all__ = ["Registry", "RegistryClient"]
