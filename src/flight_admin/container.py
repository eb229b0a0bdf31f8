"""
Dependency injection container for flight admin components
"""

from typing import Dict, Any, Optional
import structlog

from .config import config
from .interfaces.booking_api import BookingAPIInterface
from .services import (
    CallRegistry, RequestLifecycleManager, CalendarEngine, BookingCalendarService
)
from .clients.booking_api_client import BookingAPIClient, MockBookingAPIClient

logger = structlog.get_logger()


class ServiceContainer:
    """
    Dependency injection container for managing service instances and their dependencies.

    Every container owns its own call registry, so two containers never share
    in-flight state.
    """

    def __init__(self, client: Optional[BookingAPIInterface] = None):
        self._services: Dict[str, Any] = {}
        self._client_override = client
        self._initialized = False

    async def initialize(self):
        """Initialize all services and their dependencies"""
        if self._initialized:
            return

        logger.info("Initializing service container")

        try:
            self._initialize_request_lifecycle()
            self._initialize_api_clients()
            self._initialize_calendar()

            self._initialized = True
            logger.info("Service container initialized successfully", services=self.list_services())

        except Exception as e:
            logger.error("Failed to initialize service container", error=str(e))
            raise

    def _initialize_request_lifecycle(self):
        registry = CallRegistry()
        self._services['call_registry'] = registry
        self._services['request_manager'] = RequestLifecycleManager(registry=registry)

    def _initialize_api_clients(self):
        """Initialize the booking API client, mock or real"""
        if self._client_override is not None:
            client = self._client_override
            logger.info("Booking API client injected", type=type(client).__name__)
        elif config.booking_api.use_mock:
            client = MockBookingAPIClient()
            logger.info("Booking API client initialized (mock)")
        else:
            client = BookingAPIClient()
            logger.info("Booking API client initialized", base_url=config.booking_api.base_url)

        self._services['booking_client'] = client

    def _initialize_calendar(self):
        engine = CalendarEngine()
        self._services['calendar_engine'] = engine
        self._services['booking_calendar'] = BookingCalendarService(
            client=self._services['booking_client'],
            manager=self._services['request_manager'],
            engine=engine
        )

    def get_service(self, service_name: str) -> Any:
        """Get a service by name"""
        if not self._initialized:
            raise RuntimeError("Container not initialized. Call initialize() first.")

        if service_name not in self._services:
            raise KeyError(f"Service '{service_name}' not found in container")

        return self._services[service_name]

    def get_call_registry(self) -> CallRegistry:
        return self.get_service('call_registry')

    def get_request_manager(self) -> RequestLifecycleManager:
        return self.get_service('request_manager')

    def get_booking_client(self) -> BookingAPIInterface:
        return self.get_service('booking_client')

    def get_calendar_engine(self) -> CalendarEngine:
        return self.get_service('calendar_engine')

    def get_booking_calendar(self) -> BookingCalendarService:
        return self.get_service('booking_calendar')

    async def cleanup(self):
        """Cancel outstanding fetches and close the HTTP client"""
        if not self._initialized:
            return

        logger.info("Cleaning up service container")

        try:
            self._services['booking_calendar'].close()
            await self._services['booking_client'].close()
        except Exception as e:
            logger.error("Error during service container cleanup", error=str(e))
        finally:
            self._services.clear()
            self._initialized = False

        logger.info("Service container cleanup completed")

    def is_initialized(self) -> bool:
        """Check if container is initialized"""
        return self._initialized

    def list_services(self) -> Dict[str, str]:
        """List all registered services"""
        return {name: type(service).__name__ for name, service in self._services.items()}


def configure_environment():
    """Log the environment the services run in"""
    env = config.server.environment.lower()

    if env not in ("development", "production", "testing"):
        logger.warning("Unknown environment, using development configuration", environment=env)
    else:
        logger.info("Configuring services", environment=env)
