"""
pulsar_deploy.orchestration.dependency_graph - Init Order Planning
====================================================================

Artifact-reference init parameters form a directed graph: an artifact
depends on every artifact its init parameters reference. Initialization
must follow that graph, so a referenced contract is set up before the
contracts that point at it.

    plan_initialization_order(specs)
        1. Reject references to artifacts missing from the catalog.
        2. Reject cycles (reported with the full path, e.g. a → b → a).
        3. Topologically sort; ties keep the configured catalog order.

Both checks run before any network call.
"""

from __future__ import annotations

from typing import Sequence

from pulsar_deploy.core.exceptions import ConfigurationError, CycleDetectedError
from pulsar_deploy.core.models import ArtifactSpec


def _check_references(specs: Sequence[ArtifactSpec]) -> None:
    known = {spec.name for spec in specs}
    for spec in specs:
        for dependency in spec.dependencies:
            if dependency not in known:
                raise ConfigurationError(
                    message=(
                        f"Artifact '{spec.name}' references unknown artifact "
                        f"'{dependency}'"
                    ),
                    error_code="UNKNOWN_ARTIFACT_REFERENCE",
                    details={"artifact_name": spec.name, "dependency": dependency},
                )


def find_cycle(specs: Sequence[ArtifactSpec]) -> list[str]:
    """Return one reference cycle as a closed path, or [] if there is none."""
    edges = {spec.name: spec.dependencies for spec in specs}
    visiting: list[str] = []
    done: set[str] = set()

    def visit(name: str) -> list[str]:
        if name in done:
            return []
        if name in visiting:
            return visiting[visiting.index(name):] + [name]
        visiting.append(name)
        for dependency in edges.get(name, []):
            cycle = visit(dependency)
            if cycle:
                return cycle
        visiting.pop()
        done.add(name)
        return []

    for spec in specs:
        cycle = visit(spec.name)
        if cycle:
            return cycle
    return []


def plan_initialization_order(specs: Sequence[ArtifactSpec]) -> list[ArtifactSpec]:
    """Order ``specs`` so every artifact comes after the artifacts it references.

    Args:
        specs: The catalog in configured order.

    Returns:
        All specs (with or without an init entrypoint), dependencies first.

    Raises:
        ConfigurationError: A reference names an artifact not in ``specs``.
        CycleDetectedError: The references form a cycle.
    """
    _check_references(specs)

    cycle = find_cycle(specs)
    if cycle:
        raise CycleDetectedError(
            message="Artifact references form a cycle: " + " -> ".join(cycle),
            cycle=cycle,
        )

    position = {spec.name: index for index, spec in enumerate(specs)}
    remaining = {spec.name: set(spec.dependencies) for spec in specs}
    ordered: list[ArtifactSpec] = []

    # Kahn's algorithm; the ready set is re-scanned in catalog order
    while remaining:
        ready = sorted(
            (name for name, deps in remaining.items() if not deps),
            key=position.__getitem__,
        )
        name = ready[0]
        del remaining[name]
        for deps in remaining.values():
            deps.discard(name)
        ordered.append(specs[position[name]])

    return ordered
