from pickup_intake.creation_workflow.service import CreationOrchestrator, RoleProvisioning

__all__ = ["CreationOrchestrator", "RoleProvisioning"]
