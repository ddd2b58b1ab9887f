from .action_workflow import ActionWorkflow
from .config_persistence import ConfigPersistenceCoordinator
from .mapping_store import MappingStore

__all__ = ["ActionWorkflow", "ConfigPersistenceCoordinator", "MappingStore"]
