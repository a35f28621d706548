"""
Contract Registry - service contracts and the lookup they are resolved against.

Each service has:
- ServiceContract: its parameters (ParamSpec, in definition order) plus
  service-level metadata (engine, transaction, semaphore, permission).
- InterfaceRef: parent contracts whose parameters it inherits.
- OverrideParam: patches applied after inheritance.

ContractRegistry is the in-memory lookup used by InterfaceResolver
(lookup_contract / group_members). Registering a contract under a name that
is already taken makes the new contract supersede the old one.
"""

import logging
import threading
from dataclasses import InitVar, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from .errors import ContractDefinitionError
from .modes import (
    IN,
    OUT,
    PARAM_MODES_IO,
    PARAM_MODE_PARAMS_MAP,
    matches,
)
from .params import OverrideParam, ParamSpec

logger = logging.getLogger(__name__)

ENGINE_GROUP = "group"
ENGINE_ENTITY_AUTO = "entity-auto"
CODE_ENGINES = ("java", "python")


class SemaphorePolicy(Enum):
    """Admission rule for concurrent invocations of one service."""
    NONE = "none"
    WAIT = "wait"
    FAIL = "fail"


class LogLevel(Enum):
    """Logical log level for a service."""
    DEBUG = "debug"
    NORMAL = "normal"
    QUIET = "quiet"


class InterfaceRef(BaseModel):
    """Reference to a contract whose parameters are inherited."""
    model_config = ConfigDict(frozen=True)

    service_name: str
    optional: bool = False


class PermissionSpec(BaseModel):
    """Permission service to consult before invocation (evaluated by the dispatcher)."""
    model_config = ConfigDict(frozen=True)

    service_name: str
    main_action: Optional[str] = None
    resource_description: Optional[str] = None


@dataclass(eq=False)
class ServiceContract:
    """Complete parameter contract for one service."""
    name: str
    engine: str = "java"
    location: Optional[str] = None
    invoke: Optional[str] = None
    description: str = ""
    default_entity_name: Optional[str] = None
    params: InitVar[Optional[List[ParamSpec]]] = None

    auth: bool = False
    export: bool = False
    validate: bool = True
    debug: bool = False
    use_transaction: bool = True
    require_new_transaction: bool = False
    transaction_timeout: int = 0          # Seconds, 0 = dispatcher default
    max_retry: int = -1
    hide_result_in_log: bool = False
    priority: Optional[int] = None

    semaphore: SemaphorePolicy = SemaphorePolicy.NONE
    semaphore_wait_millis: int = 300000
    semaphore_sleep_millis: int = 500

    permission: Optional[PermissionSpec] = None
    declared_interfaces: List[InterfaceRef] = field(default_factory=list)
    override_params: List[OverrideParam] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)
    internal_group: Optional[List[InterfaceRef]] = None

    deprecated_use_instead: Optional[str] = None
    deprecated_since: Optional[str] = None
    deprecated_reason: Optional[str] = None
    log_level: LogLevel = LogLevel.NORMAL

    def __post_init__(self, params):
        if self.require_new_transaction:
            # A new transaction is still a transaction
            self.use_transaction = True
        if isinstance(self.semaphore, str):
            self.semaphore = SemaphorePolicy(self.semaphore.lower())
        if isinstance(self.log_level, str):
            self.log_level = LogLevel(self.log_level.lower())

        seen = set()
        interfaces = []
        for ref in self.declared_interfaces:
            if isinstance(ref, str):
                ref = InterfaceRef(service_name=ref)
            if ref.service_name not in seen:
                seen.add(ref.service_name)
                interfaces.append(ref)
        self.declared_interfaces = interfaces
        self.properties = dict(self.properties)

        self._params: Dict[str, ParamSpec] = {}
        for param in params or []:
            self.add_param(param)

        self._lock = threading.RLock()
        self._type_convert_params: Optional[List[ParamSpec]] = None
        self.resolved = False
        self.supersedes: Optional["ServiceContract"] = None

    def __repr__(self):
        return (
            f"ServiceContract(name={self.name!r}, engine={self.engine!r}, "
            f"params={len(self._params)}, resolved={self.resolved})"
        )

    # -------------------------------------------------------------------------
    # Parameter storage
    # -------------------------------------------------------------------------

    def add_param(self, param: ParamSpec) -> None:
        """Insert a parameter; an existing name is replaced in place."""
        if param is not None:
            self._params[param.name] = param

    def add_param_clone(self, param: ParamSpec) -> None:
        if param is not None:
            self.add_param(param.clone())

    def remove_param(self, name: str) -> Optional[ParamSpec]:
        return self._params.pop(name, None)

    def get_param(self, name: str) -> Optional[ParamSpec]:
        return self._params.get(name)

    def has_param(self, name: str) -> bool:
        return name in self._params

    def param_list(self) -> List[ParamSpec]:
        """Parameters in definition order (a copy)."""
        return list(self._params.values())

    def named_params(self, names: Iterable[str]) -> List[ParamSpec]:
        """Parameters for the given names, in the order given; unknown names are skipped."""
        return [self._params[n] for n in names if n in self._params]

    def params_for_mode(self, mode: str) -> Optional[List[ParamSpec]]:
        """The reserved system parameters for a *-SYS mode, None for any other mode."""
        names = PARAM_MODE_PARAMS_MAP.get(mode)
        return self.named_params(names) if names is not None else None

    # -------------------------------------------------------------------------
    # Views by direction
    # -------------------------------------------------------------------------

    def params_by_mode(self, mode: str, include_optional: bool = True, include_internal: bool = True) -> List[str]:
        """
        Parameter names for a direction, in definition order.

        IN and OUT queries both include INOUT parameters. An unsupported mode
        returns an empty list.
        """
        if mode not in PARAM_MODES_IO:
            return []
        return [
            p.name for p in self._params.values()
            if matches(p.mode, mode)
            and (include_optional or not p.optional)
            and (include_internal or not p.internal)
        ]

    def required_count(self, direction: str) -> int:
        """Number of required, non-internal parameters for a direction."""
        return len([
            p for p in self._params.values()
            if matches(p.mode, direction) and not p.optional and not p.internal
        ])

    def optional_count(self, direction: str) -> int:
        """Number of optional, non-internal parameters for a direction."""
        return len([
            p for p in self._params.values()
            if matches(p.mode, direction) and p.optional and not p.internal
        ])

    def defined_in_count(self) -> int:
        return self.required_count(IN) + self.optional_count(IN)

    def defined_out_count(self) -> int:
        return self.required_count(OUT) + self.optional_count(OUT)

    def all_param_names(self) -> List[str]:
        return sorted(self._params)

    def in_param_names(self) -> List[str]:
        return sorted(p.name for p in self._params.values() if p.is_in)

    def out_param_names(self) -> List[str]:
        return sorted(p.name for p in self._params.values() if p.is_out)

    def in_params(self) -> List[ParamSpec]:
        return [p for p in self._params.values() if p.is_in]

    def out_params(self) -> List[ParamSpec]:
        return [p for p in self._params.values() if p.is_out]

    def in_parameter_sequence(self, source: Optional[Mapping[str, Any]]) -> List[Any]:
        """Non-null values of IN/INOUT parameters present in source, in definition order."""
        if not source:
            return []
        return [source[p.name] for p in self.in_params() if source.get(p.name) is not None]

    def type_convert_params(self) -> List[ParamSpec]:
        """Parameters flagged type_convert; computed once per resolution."""
        cached = self._type_convert_params
        if cached is None:
            with self._lock:
                if self._type_convert_params is None:
                    self._type_convert_params = [p for p in self._params.values() if p.type_convert]
                cached = self._type_convert_params
        return cached

    def invalidate_caches(self) -> None:
        self._type_convert_params = None

    @property
    def resolution_lock(self) -> threading.RLock:
        """Held while this contract's parameters are being merged."""
        return self._lock

    # -------------------------------------------------------------------------
    # Properties, metadata
    # -------------------------------------------------------------------------

    def get_property(self, name: str) -> Any:
        return self.properties.get(name)

    def has_properties(self) -> bool:
        return bool(self.properties)

    def as_mapping(self) -> Mapping[str, Any]:
        """Read-only view of the descriptive fields of this contract."""
        return MappingProxyType({
            "name": self.name,
            "engine": self.engine,
            "location": self.location,
            "invoke": self.invoke,
            "description": self.description,
            "default_entity_name": self.default_entity_name,
            "auth": self.auth,
            "export": self.export,
            "validate": self.validate,
            "debug": self.debug,
            "use_transaction": self.use_transaction,
            "require_new_transaction": self.require_new_transaction,
            "transaction_timeout": self.transaction_timeout,
            "max_retry": self.max_retry,
            "semaphore": self.semaphore.value,
            "semaphore_wait_millis": self.semaphore_wait_millis,
            "semaphore_sleep_millis": self.semaphore_sleep_millis,
            "permission": self.permission,
            "declared_interfaces": tuple(ref.service_name for ref in self.declared_interfaces),
            "properties": MappingProxyType(dict(self.properties)),
            "priority": self.priority,
            "deprecated_use_instead": self.deprecated_use_instead,
            "resolved": self.resolved,
        })

    @property
    def quiet(self) -> bool:
        return self.log_level == LogLevel.QUIET

    def validate_model(self) -> List[str]:
        """
        Check the definition for problems that would break invocation.

        Returns:
            List of problem descriptions (empty when healthy). Each is logged
            at ERROR; nothing is raised.
        """
        problems = []
        if self.engine == ENGINE_ENTITY_AUTO and not self.default_entity_name:
            problems.append(f"entity-auto service '{self.name}' does not specify a default-entity-name")
        if self.engine in CODE_ENGINES and not (self.location and self.invoke):
            problems.append(f"{self.engine} service '{self.name}' must specify both location and invoke")
        if self.invoke and not self.location and self.engine not in (ENGINE_GROUP, ENGINE_ENTITY_AUTO):
            problems.append(f"Service '{self.name}' specifies invoke '{self.invoke}' without a location")
        if self.semaphore_wait_millis < 0 or self.semaphore_sleep_millis < 0:
            problems.append(f"Service '{self.name}' has a negative semaphore wait/sleep time")
        for problem in problems:
            logger.error(problem)
        return problems

    def inform_if_deprecated(self, warn: bool = True) -> None:
        """Log that this service is deprecated, if it is."""
        if self.deprecated_use_instead is None:
            return
        message = f"DEPRECATED: the service {self.name} has been deprecated and replaced by {self.deprecated_use_instead}"
        if self.deprecated_since:
            message += f", since {self.deprecated_since}"
        if self.deprecated_reason:
            message += f" because '{self.deprecated_reason}'"
        if warn:
            logger.warning(message)
        else:
            logger.debug(message)

    # -------------------------------------------------------------------------
    # Redefinition chain
    # -------------------------------------------------------------------------

    def version_chain(self) -> List["ServiceContract"]:
        """This contract followed by every earlier definition it supersedes."""
        chain = []
        current = self
        while current is not None:
            chain.append(current)
            current = current.supersedes
        return chain

    def set_supersedes(self, previous: "ServiceContract") -> None:
        """
        Record that this contract redefines previous.

        If this contract already supersedes another definition, previous is
        attached to the tail of that chain instead.

        Raises:
            ContractDefinitionError: If the link would create a cycle.
        """
        if previous is None:
            return
        own_chain = self.version_chain()
        tail = own_chain[-1]
        own_ids = {id(c) for c in own_chain}
        if any(id(c) in own_ids for c in previous.version_chain()):
            raise ContractDefinitionError(
                f"Service [{self.name}] redefinition would create a cycle in the supersedes chain"
            )
        tail.supersedes = previous
        logger.info(
            f"Service [{self.name}] redefinition: previous: [{id(previous)}, {len(previous._params)} params]; "
            f"new: [{id(self)}, {len(self._params)} params]"
        )


class ContractRegistry:
    """
    Thread-safe in-memory contract lookup.

    Usage:
        registry = ContractRegistry()
        registry.register(ServiceContract(name="createOrder", ...))
        registry.lookup_contract("createOrder")
    """

    def __init__(self, contracts: Iterable[ServiceContract] = ()):
        self._contracts: Dict[str, ServiceContract] = {}
        self._groups: Dict[str, List[InterfaceRef]] = {}
        self._lock = threading.Lock()
        for contract in contracts:
            self.register(contract)

    def register(self, contract: ServiceContract) -> None:
        """Register a contract; an existing one of the same name is superseded."""
        with self._lock:
            previous = self._contracts.get(contract.name)
            if previous is not None and previous is not contract:
                contract.set_supersedes(previous)
            self._contracts[contract.name] = contract

    def lookup_contract(self, name: str) -> Optional[ServiceContract]:
        return self._contracts.get(name)

    def register_group(self, location: str, members: Iterable[Any]) -> None:
        """Register a service group; members are InterfaceRefs or service names."""
        refs = [m if isinstance(m, InterfaceRef) else InterfaceRef(service_name=m) for m in members]
        with self._lock:
            self._groups[location] = refs

    def group_members(self, location: str) -> List[InterfaceRef]:
        return list(self._groups.get(location, []))

    def names(self) -> List[str]:
        return list(self._contracts)

    def __contains__(self, name: str) -> bool:
        return name in self._contracts

    def __len__(self) -> int:
        return len(self._contracts)
