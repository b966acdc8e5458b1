"""Abstract interface for compute host lifecycle control."""

from abc import ABC, abstractmethod


class HostController(ABC):
    """Abstract base class for stopping the host the worker runs on."""

    @abstractmethod
    def stop(self) -> None:
        """
        Requests that the compute host be stopped.

        Raises:
            LifecycleError: If the stop request fails.
        """
