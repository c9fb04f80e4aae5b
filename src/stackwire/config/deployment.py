"""Deployment-level settings supplied by the operator."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .errors import InvalidConfigurationError

DEFAULT_PROJECT = "Diversitus"
DEFAULT_REGION = "us-east-1"
DEFAULT_BUILD_CONTEXT = "."
DEFAULT_DOCKERFILE = "backend/app/Dockerfile"


@dataclass(frozen=True, slots=True, kw_only=True)
class DeploymentConfig:
    """Domain names and naming inputs for one stack.

    ``domain_name`` is the service host (e.g. ``api.example.com``) and must
    equal or sit under ``root_domain``, whose zone hosts the records.
    """

    domain_name: str
    root_domain: str
    project: str = DEFAULT_PROJECT
    region: str = DEFAULT_REGION
    build_context: str = DEFAULT_BUILD_CONTEXT
    dockerfile: str = DEFAULT_DOCKERFILE

    def __post_init__(self) -> None:
        domain = self.domain_name.rstrip(".").lower()
        root = self.root_domain.rstrip(".").lower()
        if domain != root and not domain.endswith(f".{root}"):
            raise InvalidConfigurationError(
                "STACKWIRE_DOMAIN_NAME", self.domain_name, f"not within {self.root_domain}"
            )
        object.__setattr__(self, "domain_name", domain)
        object.__setattr__(self, "root_domain", root)

    @property
    def prefix(self) -> str:
        return self.project.lower().replace(" ", "-")


def get_deployment_config() -> DeploymentConfig:
    values = require_env_vars(("STACKWIRE_DOMAIN_NAME", "STACKWIRE_ROOT_DOMAIN"))
    return DeploymentConfig(
        domain_name=values["STACKWIRE_DOMAIN_NAME"],
        root_domain=values["STACKWIRE_ROOT_DOMAIN"],
        project=optional_env_var("STACKWIRE_PROJECT", DEFAULT_PROJECT) or DEFAULT_PROJECT,
        region=optional_env_var("AWS_REGION", DEFAULT_REGION) or DEFAULT_REGION,
        build_context=optional_env_var("STACKWIRE_BUILD_CONTEXT", DEFAULT_BUILD_CONTEXT)
        or DEFAULT_BUILD_CONTEXT,
        dockerfile=optional_env_var("STACKWIRE_DOCKERFILE", DEFAULT_DOCKERFILE)
        or DEFAULT_DOCKERFILE,
    )
