"""Permission resolution and mutation engine."""

from gatehouse.acl.acl import Acl
from gatehouse.acl.aggregator import PermissionAggregator
from gatehouse.acl.checker import PermissionChecker
from gatehouse.acl.hierarchy import HierarchyResolver
from gatehouse.acl.models import AllowRule, Grant, InvalidArgumentError, Verdict, WILDCARD
from gatehouse.acl.mutations import MutationEngine

__all__ = [
    "Acl",
    "AllowRule",
    "Grant",
    "HierarchyResolver",
    "InvalidArgumentError",
    "MutationEngine",
    "PermissionAggregator",
    "PermissionChecker",
    "Verdict",
    "WILDCARD",
]
