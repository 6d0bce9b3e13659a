from typing import Type, TypeVar, Dict, List
from loguru import logger

from .config import ConfigManager
from .base_system import BaseSystem

T = TypeVar('T', bound=BaseSystem)

class ServiceLocator:
    """
    Registry for application systems.
    Manages initialization and shutdown order.

    Created once at startup and handed to the systems it owns, together with
    the logger they should report to:
        locator = ServiceLocator(ConfigManager("config.json"), setup_logging())
        locator.register_system(DatabaseManager)
        locator.register_system(PageTreeService)
        await locator.start_all()
    """

    def __init__(self, config: ConfigManager, log=None):
        self.config = config
        self.logger = log or logger
        self._systems: Dict[Type[BaseSystem], BaseSystem] = {}
        logger.info("ServiceLocator initialized.")

    def register_system(self, system_cls: Type[T]) -> T:
        """
        Instantiates and registers a system.
        """
        if system_cls in self._systems:
            return self._systems[system_cls]

        logger.debug(f"Registering system: {system_cls.__name__}")
        instance = system_cls(self, self.config)
        self._systems[system_cls] = instance
        return instance

    def add_system(self, instance: BaseSystem) -> BaseSystem:
        """Registers an already constructed system (e.g. one built with an injected client)."""
        self._systems[type(instance)] = instance
        return instance

    def get_system(self, system_cls: Type[T]) -> T:
        """
        Retrieves a registered system.
        """
        if system_cls not in self._systems:
            raise KeyError(f"System {system_cls.__name__} not registered.")
        return self._systems[system_cls]

    async def start_all(self):
        """
        Initialize all registered systems in dependency order.
        """
        logger.info("Starting all systems...")

        for system in self._topological_sort():
            try:
                await system.initialize()
            except Exception as e:
                logger.error(f"Failed to start system {system.__class__.__name__}: {e}")
                raise
            logger.info(f"System {system.__class__.__name__} started.")

    def _topological_sort(self) -> List[BaseSystem]:
        """
        Sort systems by their `depends_on` declarations (Kahn's algorithm).
        """
        in_degree = {sys: 0 for sys in self._systems.values()}
        graph = {sys: [] for sys in self._systems.values()}

        for sys in self._systems.values():
            for dep_cls in getattr(sys.__class__, 'depends_on', []):
                if dep_cls in self._systems:
                    dep_sys = self._systems[dep_cls]
                    graph[dep_sys].append(sys)
                    in_degree[sys] += 1

        queue = [sys for sys, deg in in_degree.items() if deg == 0]
        result = []

        while queue:
            sys = queue.pop(0)
            result.append(sys)

            for dependent in graph[sys]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(result) != len(self._systems):
            logger.warning("Circular dependency detected, using registration order")
            return list(self._systems.values())

        return result

    async def stop_all(self):
        """
        Shutdown all systems in reverse start order.
        """
        logger.info("Stopping all systems...")
        for system in reversed(self._topological_sort()):
            if not system.is_ready:
                continue
            try:
                await system.shutdown()
                logger.info(f"System {system.__class__.__name__} stopped.")
            except Exception as e:
                logger.error(f"Failed to stop system {system.__class__.__name__}: {e}")
