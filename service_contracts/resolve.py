"""
Interface Resolution
====================

Flattens a contract's declared interfaces (and its group members, and the
earlier definition it supersedes) into one effective parameter set, then
applies its override patches. Runs at most once per contract.

Usage:
    from service_contracts.resolve import InterfaceResolver

    resolver = InterfaceResolver.for_registry(registry)
    warnings = resolver.resolve(registry.lookup_contract("createOrder"))

Resolution walks the interface graph with an explicit stack of generators
instead of Python recursion, so the depth ceiling is enforced on the stack
length and deep or cyclic graphs fail with RecursionLimitExceeded instead of
RecursionError. The depth budget belongs to one resolve() call; concurrent
calls on other threads have their own.

Environment:
    SERVICE_CONTRACTS_MAX_RESOLVE_DEPTH: ceiling on nested resolutions (default 1000)
"""

import logging
from typing import Callable, Iterator, List, Optional

from . import config
from .errors import (
    ContractWarning,
    DanglingOverride,
    RecursionLimitExceeded,
    UnresolvedInterfaceReference,
)
from .modes import INOUT
from .registry import ENGINE_GROUP, ContractRegistry, InterfaceRef, ServiceContract

logger = logging.getLogger(__name__)

LookupContract = Callable[[str], Optional[ServiceContract]]
GroupMembers = Callable[[str], List[InterfaceRef]]


class InterfaceResolver:
    """
    Resolves contracts against a contract lookup.

    Args:
        lookup_contract: name -> ServiceContract, or None if not found
        group_members: group location -> member refs (only used for
            contracts with engine 'group')
        max_depth: recursion ceiling; defaults to the configured value
    """

    def __init__(
        self,
        lookup_contract: LookupContract,
        group_members: Optional[GroupMembers] = None,
        max_depth: Optional[int] = None,
    ):
        self.lookup_contract = lookup_contract
        self.group_members = group_members
        self.max_depth = max_depth if max_depth is not None else config.get_max_resolve_depth()

    @classmethod
    def for_registry(cls, registry: ContractRegistry, max_depth: Optional[int] = None) -> "InterfaceResolver":
        return cls(registry.lookup_contract, registry.group_members, max_depth=max_depth)

    def resolve(self, contract: ServiceContract) -> List[ContractWarning]:
        """
        Resolve contract (and, first, every contract it inherits from).

        Returns:
            Non-fatal warnings produced by this call (already logged).
            Empty if the contract was already resolved.

        Raises:
            RecursionLimitExceeded: If nesting exceeds max_depth. Nothing is
                marked resolved along the aborted chain.
        """
        warnings: List[ContractWarning] = []
        if contract.resolved:
            return warnings

        stack = [self._resolve_steps(contract, warnings)]
        try:
            while stack:
                try:
                    dependency = next(stack[-1])
                except StopIteration:
                    stack.pop()
                    continue
                if dependency.resolved:
                    continue
                if len(stack) >= self.max_depth:
                    raise RecursionLimitExceeded(dependency.name, self.max_depth)
                stack.append(self._resolve_steps(dependency, warnings))
        except BaseException:
            # Release the locks held by suspended generators, innermost first
            for steps in reversed(stack):
                steps.close()
            raise
        return warnings

    # =========================================================================
    # STEPS
    # =========================================================================

    def _resolve_steps(self, contract: ServiceContract, warnings: List[ContractWarning]) -> Iterator[ServiceContract]:
        """
        Resolution of one contract. Yields each contract that must be
        resolved before the merge can continue; the driver resolves it and
        resumes this generator.
        """
        with contract.resolution_lock:
            if contract.resolved:
                return

            predecessor = contract.supersedes
            if predecessor is not None and not predecessor.resolved:
                yield predecessor

            if contract.engine == ENGINE_GROUP and not contract.declared_interfaces:
                self._expand_group(contract)

            for ref in list(contract.declared_interfaces):
                if predecessor is not None and ref.service_name == predecessor.name:
                    interface = predecessor
                else:
                    interface = self.lookup_contract(ref.service_name)
                    if interface is None:
                        self._warn(UnresolvedInterfaceReference(contract.name, ref.service_name), warnings)
                        continue
                    if not interface.resolved:
                        yield interface
                self._merge_interface(contract, interface, ref)

            if predecessor is not None:
                contract.declared_interfaces = [
                    ref for ref in contract.declared_interfaces
                    if ref.service_name != predecessor.name
                ]

            self._apply_overrides(contract, warnings)

            contract.invalidate_caches()
            contract.resolved = True
            logger.debug(f"Resolved service [{contract.name}] with {len(contract.param_list())} params")

    def _expand_group(self, contract: ServiceContract) -> None:
        if contract.internal_group is not None:
            members = contract.internal_group
        elif self.group_members is not None and contract.location:
            members = self.group_members(contract.location)
        else:
            members = []
        contract.declared_interfaces = [InterfaceRef(service_name=m.service_name) for m in members]
        logger.debug(
            f"Expanded group service [{contract.name}] to interfaces "
            f"{[ref.service_name for ref in contract.declared_interfaces]}"
        )

    def _merge_interface(self, contract: ServiceContract, interface: ServiceContract, ref: InterfaceRef) -> None:
        for param in interface.param_list():
            existing = contract.get_param(param.name)
            if existing is not None:
                # Modes that disagree widen to INOUT
                if existing.mode != param.mode and existing.mode != INOUT:
                    existing.mode = INOUT
                    if existing.optional or param.optional:
                        existing.optional = True
            else:
                inherited = param.clone()
                if ref.optional:
                    inherited.optional = True
                contract.add_param(inherited)

        merged = [key for key in interface.properties if key not in contract.properties]
        for key in merged:
            contract.properties[key] = interface.properties[key]
        if merged:
            logger.debug(f"Service [{contract.name}] inherited properties {merged} from [{interface.name}]")

    def _apply_overrides(self, contract: ServiceContract, warnings: List[ContractWarning]) -> None:
        for patch in contract.override_params:
            existing = contract.remove_param(patch.name)
            if existing is None:
                self._warn(DanglingOverride(contract.name, patch.name), warnings)
                continue
            patched = existing.clone()
            patch.apply_to(patched)
            contract.add_param(patched)

    def _warn(self, warning: ContractWarning, warnings: List[ContractWarning]) -> None:
        logger.warning(
            str(warning),
            extra={
                "event": type(warning).__name__,
                "service": warning.service,
                "param": warning.name,
            },
        )
        warnings.append(warning)
