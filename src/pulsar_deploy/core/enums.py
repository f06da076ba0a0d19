"""
pulsar_deploy.core.enums - Type-Safe Enumerations
===================================================

This module defines all enumeration types used throughout pulsar-deploy.

All enums inherit from both `str` and `Enum`, which means:
    - They serialize to strings in JSON/YAML (Pydantic-friendly)
    - They can be compared with plain strings: Outcome.OK == "ok"
    - They have human-readable representations

Concept Mapping:

    ┌─────────────────────────────────────────────────────────────────┐
    │  PER-RUN STATE                                                   │
    │    DeploymentStatus: NOT_DEPLOYED → DEPLOYED → INITIALIZED      │
    │                                   ↘ FAILED                      │
    ├─────────────────────────────────────────────────────────────────┤
    │  RUN REPORT                                                      │
    │    Phase:   deploy | init                                        │
    │    Outcome: ok | skipped | failed                                │
    ├─────────────────────────────────────────────────────────────────┤
    │  PLANNING / EXECUTION                                            │
    │    ParamKind:  how an init parameter is resolved                 │
    │    CallStatus: classified result of a remote call                │
    └─────────────────────────────────────────────────────────────────┘
"""

from enum import Enum


# =============================================================================
# Deployment Status Enumeration
# =============================================================================
# The process-local lifecycle of a single artifact during one run:
#
#   NOT_DEPLOYED ──deploy ok──→ DEPLOYED ──initialize ok──→ INITIALIZED
#        │                          │
#        └──deploy failed──→ FAILED ←──initialize failed──┘
#
# The initial status is derived from the State Store: DEPLOYED when a record
# exists, NOT_DEPLOYED otherwise. INITIALIZED and FAILED are terminal.
# =============================================================================
class DeploymentStatus(str, Enum):
    """Per-run lifecycle state of an artifact.

    Usage:
        >>> status = DeploymentStatus.DEPLOYED
        >>> status.is_terminal
        False
    """

    NOT_DEPLOYED = "not_deployed"   # No record in the State Store yet
    DEPLOYED = "deployed"           # Has an address (recorded or freshly deployed)
    INITIALIZED = "initialized"     # initialize() succeeded or was already done
    FAILED = "failed"               # Deploy or initialize failed this run

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is allowed from this status."""
        return self in (DeploymentStatus.INITIALIZED, DeploymentStatus.FAILED)


class Phase(str, Enum):
    """The two phases of a pipeline run, in execution order."""

    DEPLOY = "deploy"
    INIT = "init"


class Outcome(str, Enum):
    """Outcome of one (artifact, phase) step in the RunReport.

    A run is successful when no entry is FAILED. SKIPPED entries
    (already deployed, dependency failed, ...) do not fail the run.
    """

    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


# =============================================================================
# Parameter Kind Enumeration
# =============================================================================
# Describes how an initialization parameter gets its value at call time:
#
#   LITERAL  → the configured value, passed through unchanged
#   ADMIN    → the deployer identity's resolved address
#   TOKEN    → the payment token address (network default or override)
#   ARTIFACT → another artifact's deployed address (creates a graph edge)
# =============================================================================
class ParamKind(str, Enum):
    """How an InitParam is resolved into a concrete argument value."""

    LITERAL = "literal"
    ADMIN = "admin"
    TOKEN = "token"
    ARTIFACT = "artifact"


class CallStatus(str, Enum):
    """Classified result of a deploy/invoke call.

    Only TRANSPORT_FAILURE is eligible for a retry by a wrapping caller;
    REMOTE_REJECTED is terminal for that call within the run.
    """

    SUCCESS = "success"                       # The network accepted the call
    REMOTE_REJECTED = "remote_rejected"       # Reached the network and was refused
    TRANSPORT_FAILURE = "transport_failure"   # Unreachable, timed out or unparsable
