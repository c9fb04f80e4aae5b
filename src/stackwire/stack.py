"""Declaration of the Diversitus application stack.

The stack is a plain list of ``ResourceSpec`` values; wiring between resources
is expressed only through reference tokens, so the graph builder derives the
order (e.g. the load balancer listener waits for the validated certificate).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from stackwire.domain.errors import UnresolvedDependencyError
from stackwire.domain.model import ResourceKind, ResourceSpec, interpolate, ref
from stackwire.domain.reconciliation import substitute

if TYPE_CHECKING:
    from stackwire.config import DeploymentConfig
    from stackwire.domain.reconciliation import ReconciliationReport

log = getLogger(__name__)

TABLE_ACTIONS = (
    "dynamodb:Scan",
    "dynamodb:Query",
    "dynamodb:GetItem",
    "dynamodb:BatchGetItem",
    "dynamodb:PutItem",
)
CONTAINER_PORT = 8080
EMAIL_INDEX = "EmailIndex"


@dataclass(frozen=True, slots=True)
class StackDefinition:
    """Specs plus the names the application layer needs after reconciliation."""

    specs: tuple[ResourceSpec, ...]
    exports: Mapping[str, object]
    companies_table: str
    jobs_table: str
    users_table: str


def declare_stack(config: DeploymentConfig) -> StackDefinition:
    prefix = config.prefix
    tags = {"Project": config.project}

    repository = f"{prefix}-repo"
    image = f"{prefix}-image"
    jobs_table = f"{prefix}-jobs-table"
    companies_table = f"{prefix}-companies-table"
    users_table = f"{prefix}-users-table"
    access_policy = f"{prefix}-db-access-policy"
    zone = f"{prefix}-zone"
    certificate = "cert"
    validation = f"{config.domain_name}-validation"
    load_balancer = f"{prefix}-lb"
    service = f"{prefix}-fargate-service"
    alias_record = config.domain_name

    specs = (
        ResourceSpec(ResourceKind.REGISTRY, repository, {"force_delete": True}),
        ResourceSpec(
            ResourceKind.IMAGE,
            image,
            {
                "repository_url": ref(repository, "url"),
                "context": config.build_context,
                "dockerfile": config.dockerfile,
                "platform": "linux/amd64",
            },
        ),
        _table(jobs_table, tags),
        _table(companies_table, tags),
        _table(
            users_table,
            tags,
            indexes=[{"name": EMAIL_INDEX, "hash_key": "email", "projection_type": "ALL"}],
        ),
        ResourceSpec(
            ResourceKind.POLICY,
            access_policy,
            {
                "role_name": f"{prefix}-task-role",
                "assume_role_policy": _assume_role_policy("ecs-tasks.amazonaws.com"),
                "policy_name": access_policy,
                "policy_document": {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Action": list(TABLE_ACTIONS),
                            "Effect": "Allow",
                            "Resource": [
                                ref(jobs_table, "arn"),
                                ref(companies_table, "arn"),
                                ref(users_table, "arn"),
                                interpolate(
                                    "{users}/index/" + EMAIL_INDEX, users=ref(users_table, "arn")
                                ),
                            ],
                        }
                    ],
                },
            },
        ),
        ResourceSpec(ResourceKind.ZONE, zone, {"domain": config.root_domain}),
        ResourceSpec(
            ResourceKind.CERTIFICATE,
            certificate,
            {"domain": config.domain_name, "validation_method": "DNS"},
        ),
        ResourceSpec(
            ResourceKind.VALIDATION_RECORD,
            validation,
            {
                "challenge": ref(certificate, "validation_challenges")[0],
                "certificate_arn": ref(certificate, "arn"),
                "zone_id": ref(zone, "zone_id"),
                "ttl": 300,
            },
        ),
        ResourceSpec(
            ResourceKind.LOAD_BALANCER,
            load_balancer,
            {
                "target_group": {"port": CONTAINER_PORT, "protocol": "HTTP"},
                "listener": {
                    "port": 443,
                    "protocol": "HTTPS",
                    "certificate_arn": ref(validation, "certificate_arn"),
                },
            },
        ),
        ResourceSpec(
            ResourceKind.SERVICE,
            service,
            {
                "cluster": f"{prefix}-cluster",
                "desired_count": 1,
                "assign_public_ip": True,
                "task": {
                    "role_arn": ref(access_policy, "role_arn"),
                    "container": {
                        "name": "app",
                        "image": ref(image, "image_uri"),
                        "cpu": 256,
                        "memory": 512,
                        "port_mappings": [
                            {
                                "container_port": CONTAINER_PORT,
                                "host_port": CONTAINER_PORT,
                                "target_group_arn": ref(load_balancer, "target_group_arn"),
                            }
                        ],
                        "environment": {
                            "JOBS_TABLE_NAME": ref(jobs_table, "name"),
                            "COMPANIES_TABLE_NAME": ref(companies_table, "name"),
                            "USERS_TABLE_NAME": ref(users_table, "name"),
                            "AWS_REGION": config.region,
                        },
                    },
                },
            },
        ),
        ResourceSpec(
            ResourceKind.DNS_RECORD,
            alias_record,
            {
                "zone_id": ref(zone, "zone_id"),
                "name": config.domain_name,
                "type": "A",
                "alias": {
                    "name": ref(load_balancer, "dns_name"),
                    "zone_id": ref(load_balancer, "zone_id"),
                    "evaluate_target_health": True,
                },
            },
        ),
    )
    return StackDefinition(
        specs=specs,
        exports={
            "url": f"https://{config.domain_name}",
            "nameServers": ref(zone, "name_servers"),
        },
        companies_table=companies_table,
        jobs_table=jobs_table,
        users_table=users_table,
    )


def resolve_exports(definition: StackDefinition, report: ReconciliationReport) -> dict[str, object]:
    """Resolve stack exports; exports depending on unreconciled resources are left out."""

    exports: dict[str, object] = {}
    for name, value in definition.exports.items():
        try:
            exports[name] = substitute(f"export:{name}", value, report.resources)
        except UnresolvedDependencyError as exc:
            log.warning("Export %s unavailable: %s", name, exc)
    return exports


def _table(
    name: str,
    tags: Mapping[str, str],
    *,
    indexes: list[dict[str, object]] | None = None,
) -> ResourceSpec:
    inputs: dict[str, object] = {
        "key_schema": {"id": "S"},
        "billing_mode": "PAY_PER_REQUEST",
        "tags": dict(tags),
    }
    if indexes:
        inputs["indexes"] = indexes
    return ResourceSpec(ResourceKind.TABLE, name, inputs)


def _assume_role_policy(service_principal: str) -> dict[str, object]:
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Action": "sts:AssumeRole",
                "Effect": "Allow",
                "Principal": {"Service": service_principal},
            }
        ],
    }
