"""
pulsar_deploy.integrations.execution.base - Execution Collaborator Interfaces
===============================================================================

This module defines the two external collaborators the pipeline talks to:

    BaseExecutionClient   → deploys a contract binary, invokes an entrypoint
    BaseIdentityProvider  → resolves a named identity to its address

Every concrete implementation (stellar CLI, mock) implements these
interfaces. Planners never call a client directly: they go through the
ExecutionClientAdapter (orchestration/adapter.py), which classifies every
outcome into success / remote rejection / transport failure.

Error Contract:
    Implementations signal failure by raising:
        - RemoteRejectedError:   the call reached the network and was refused
        - TransportFailureError: the network could not be reached, or the
                                 response could not be parsed
    Anything else escaping a client is a bug in that client.

Usage:
    >>> class MyClient(BaseExecutionClient):
    ...     async def deploy(self, binary_locator, identity, network):
    ...         return await my_sdk.upload_and_create(binary_locator, ...)
    ...     async def invoke(self, address, identity, network, entrypoint, args):
    ...         await my_sdk.call(address, entrypoint, ...)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from pulsar_deploy.core.models import InvokeArg


class BaseExecutionClient(ABC):
    """Abstract base class for the remote execution client.

    Both calls are blocking from the caller's point of view and may take
    seconds.
    """

    @property
    def backend_name(self) -> str:
        """Short name of the backend, used in logs."""
        return self.__class__.__name__

    @abstractmethod
    async def deploy(self, binary_locator: str, identity: str, network: str) -> str:
        """Upload and instantiate a contract binary.

        Args:
            binary_locator: Path of the compiled contract.
            identity: Name of the signing identity.
            network: Target network.

        Returns:
            The address of the new contract instance.

        Raises:
            RemoteRejectedError: The network refused the deploy.
            TransportFailureError: The network could not be reached or the
                response was unparsable.
        """

    @abstractmethod
    async def invoke(
        self,
        address: str,
        identity: str,
        network: str,
        entrypoint: str,
        args: Sequence[InvokeArg],
    ) -> None:
        """Invoke a named entrypoint on a deployed contract.

        Args:
            address: Contract address.
            identity: Name of the signing identity.
            network: Target network.
            entrypoint: Function name (e.g. "initialize").
            args: Ordered, resolved arguments.

        Raises:
            RemoteRejectedError: The network refused the call (e.g. the
                contract panicked with "already initialized").
            TransportFailureError: The network could not be reached.
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class BaseIdentityProvider(ABC):
    """Resolves identity names to addresses.

    Creating a missing identity is the provider's concern, not the
    pipeline's.
    """

    @abstractmethod
    async def resolve_address(self, identity: str) -> str:
        """Return the public address of ``identity``.

        Raises:
            ExecutionError: If the identity cannot be resolved or created.
        """
