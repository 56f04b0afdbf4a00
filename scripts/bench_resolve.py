#!/usr/bin/env python3
"""Benchmark permission resolution and checks: latency (p50, p95, p99) and QPS.

Runs the engine on synthetic in-memory data, no database needed.

Usage:
  uv run python scripts/bench_resolve.py [--roles 200] [--depth 8] [--checks 10000]
"""
from __future__ import annotations

import argparse
import os
import random
import statistics
import sys
import time
from datetime import UTC, datetime
from uuid import uuid4

from chordperm.application.dto.evaluation_context import EvaluationContext
from chordperm.domain.entities import CustomRole, Permission, PermissionAssignment
from chordperm.domain.value_objects import (
    PermissionAction,
    PermissionEffect,
    PermissionScope,
    ResourceType,
)
from chordperm.infrastructure.permission.catalog import InMemoryPermissionCatalog
from chordperm.infrastructure.permission.engine import PermissionEngine


def build_catalog() -> list[Permission]:
    return [
        Permission(
            id=uuid4(),
            name=f"{resource}.{action}.{scope}",
            resource=resource,
            action=action,
            scope=scope,
        )
        for resource in ResourceType
        for action in PermissionAction
        for scope in PermissionScope
    ]


def build_roles(permissions: list[Permission], count: int, depth: int, rng: random.Random) -> list[CustomRole]:
    """Chains of roles, each inheriting from the previous one in its chain."""
    roles: list[CustomRole] = []
    for i in range(count):
        parent = roles[i - 1].id if i % depth else None
        grants = [
            PermissionAssignment(
                permission_id=p.id,
                effect=PermissionEffect.DENY if rng.random() < 0.1 else PermissionEffect.ALLOW,
                resource_id=f"res-{rng.randrange(50)}" if p.scope == PermissionScope.RESOURCE else None,
            )
            for p in rng.sample(permissions, 10)
        ]
        roles.append(
            CustomRole(
                id=uuid4(),
                name=f"role-{i}",
                permissions=grants,
                inherits_from=[parent] if parent else [],
            )
        )
    return roles


def percentile(sorted_values: list[float], q: float) -> float:
    return sorted_values[max(0, int(len(sorted_values) * q) - 1)]


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark permission resolution")
    parser.add_argument("--roles", type=int, default=200, help="Number of roles")
    parser.add_argument("--depth", type=int, default=8, help="Inheritance chain length")
    parser.add_argument("--checks", type=int, default=10000, help="Number of resolve+check runs")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--output", type=str, default="", help="Optional output file path")
    args = parser.parse_args()

    rng = random.Random(args.seed)
    permissions = build_catalog()
    engine = PermissionEngine(InMemoryPermissionCatalog(permissions))
    roles = build_roles(permissions, args.roles, args.depth, rng)
    role_index = {r.id: r for r in roles}

    latencies: list[float] = []
    allowed = 0
    print(f"Running {args.checks} resolve+check runs over {len(roles)} roles...")
    start_total = time.perf_counter()
    for i in range(args.checks):
        held = rng.sample(roles, 3)
        context = EvaluationContext(subject_id=f"user-{i}", timestamp=datetime.now(UTC))
        t0 = time.perf_counter()
        resolved = engine.resolve_permissions(
            context.subject_id, [], held, [], context, role_index=role_index
        )
        result = engine.check_permission(
            resolved,
            rng.choice(list(ResourceType)),
            rng.choice(list(PermissionAction)),
            context,
            resource_id=f"res-{rng.randrange(50)}",
        )
        latencies.append(time.perf_counter() - t0)
        allowed += result.allowed
    total_elapsed = time.perf_counter() - start_total

    n = len(latencies)
    ordered = sorted(latencies)
    summary = (
        f"Resolve benchmark (roles={args.roles}, depth={args.depth}, runs={n}, allowed={allowed})\n"
        f"  QPS: {n / total_elapsed:.2f}\n"
        f"  Latency: p50={statistics.median(latencies) * 1000:.3f} ms, "
        f"p95={percentile(ordered, 0.95) * 1000:.3f} ms, p99={percentile(ordered, 0.99) * 1000:.3f} ms\n"
        f"  Total time: {total_elapsed:.2f} s\n"
    )
    print(summary)

    if args.output:
        os.makedirs(os.path.dirname(args.output) or ".", exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(summary)
        print(f"Wrote {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
