"""plumbline - verify that a declarative cluster converges to its spec.

Example:

    from plumbline import (
        ClusterSpec, NodeGroup, RetryPolicy, StateReader,
        annotate_steps, check_steps,
    )

    spec = ClusterSpec(
        name="search",
        namespace="default",
        version="8.11.0",
        node_groups=(NodeGroup("masters", 3),),
    )
    reader = StateReader(store)
    policy = RetryPolicy(timeout=300, interval=1)

    check_steps().run(spec, reader, policy)
    annotate_steps().run(spec, reader, policy)
    # ...mutate the cluster, then:
    check_steps().run(mutated_spec, reader, policy)
"""

from plumbline.annotate import annotate_instances, annotate_steps, wait_for_annotations
from plumbline.checks import (
    check_admin_password,
    check_certificate_authorities,
    check_cluster_health,
    check_expected_instances_ready,
    check_group_records,
    check_instance_certificates,
    check_instances,
    check_instances_in_phase,
    check_service_endpoints,
    check_services,
    check_version,
    check_volume_storage_class,
)
from plumbline.config import Settings, load_config, load_settings
from plumbline.constants import FINGERPRINT_ANNOTATION, CAKind, Health, Kind, Label, Phase
from plumbline.errors import (
    ConfigurationError,
    ConflictError,
    InvalidCertificateError,
    KeyMissingError,
    MismatchError,
    NotFoundError,
    NotReadyError,
    PlumblineError,
    StaleInstanceError,
    StepFailedError,
)
from plumbline.fingerprint import fingerprint
from plumbline.logging import LogConfig, setup_logging, teardown_logging
from plumbline.model import (
    ClusterSpec,
    ExposureConfig,
    InstanceRecord,
    InstanceStatus,
    NodeGroup,
)
from plumbline.reader import StateReader
from plumbline.retry import RetryPolicy, eventually
from plumbline.steps import Step, StepList, check_steps, pending_steps
from plumbline.store import ClusterStore, MemoryStore

__all__ = [
    # Specification
    "ClusterSpec",
    "ExposureConfig",
    "NodeGroup",
    "InstanceRecord",
    "InstanceStatus",
    # Store and reader
    "ClusterStore",
    "MemoryStore",
    "StateReader",
    # Fingerprint and annotator
    "FINGERPRINT_ANNOTATION",
    "fingerprint",
    "annotate_instances",
    "wait_for_annotations",
    "annotate_steps",
    # Checks
    "check_admin_password",
    "check_certificate_authorities",
    "check_cluster_health",
    "check_expected_instances_ready",
    "check_group_records",
    "check_instance_certificates",
    "check_instances",
    "check_instances_in_phase",
    "check_service_endpoints",
    "check_services",
    "check_version",
    "check_volume_storage_class",
    # Driver and sequencer
    "RetryPolicy",
    "eventually",
    "Step",
    "StepList",
    "check_steps",
    "pending_steps",
    # Configuration
    "LogConfig",
    "Settings",
    "load_config",
    "load_settings",
    "setup_logging",
    "teardown_logging",
    # Enums
    "CAKind",
    "Health",
    "Kind",
    "Label",
    "Phase",
    # Errors
    "PlumblineError",
    "NotFoundError",
    "KeyMissingError",
    "InvalidCertificateError",
    "MismatchError",
    "NotReadyError",
    "StaleInstanceError",
    "ConflictError",
    "StepFailedError",
    "ConfigurationError",
]
