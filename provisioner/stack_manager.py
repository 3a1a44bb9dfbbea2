"""
Stack Manager for tenant infrastructure.

Uses the Google Cloud Infrastructure Manager API to create and delete one
deployment per tenant from a shared Terraform blueprint.
"""
import concurrent.futures
import hashlib
import logging
import re
from dataclasses import dataclass
from typing import Optional

from google.api_core.exceptions import AlreadyExists, NotFound, GoogleAPIError

from shared.errors import BackendUnavailable, StackAlreadyExists, StackNotFound

logger = logging.getLogger(__name__)

DEPLOYMENT_ID_MAX_LENGTH = 63


@dataclass
class StackResult:
    tenant_name: str
    deployment_name: str
    message: str


def stack_id_for(tenant_name: str) -> str:
    """
    Derive the backend deployment id for a canonical tenant name.

    Deployment ids only allow [a-z0-9-], so the readable part is slugified
    and a digest of the exact name keeps distinct tenants apart.
    """
    slug = re.sub(r"[^a-z0-9-]+", "-", tenant_name.lower()).strip("-")
    digest = hashlib.sha1(tenant_name.encode("utf-8")).hexdigest()[:8]
    slug = slug[:DEPLOYMENT_ID_MAX_LENGTH - len(digest) - 1].rstrip("-")
    if not slug or not slug[0].isalpha():
        slug = f"t{slug}"
    return f"{slug}-{digest}"


class StackManagerClient:
    """Manages Infrastructure Manager deployments for tenants."""

    def __init__(
        self,
        project_id: str,
        region: str,
        template_url: str,
        service_account: str,
        operation_timeout: float = 60.0,
        wait_for_completion: bool = False,
        is_local: bool = False,
        client=None
    ):
        self.project_id = project_id
        self.region = region
        self.template_url = template_url
        self.service_account = service_account
        self.operation_timeout = operation_timeout
        self.wait_for_completion = wait_for_completion
        self.is_local = is_local
        self._client = client

        if self.is_local:
            logger.info("StackManagerClient running in local development mode (no actual deployments)")

    @classmethod
    def from_config(cls, cfg, client=None) -> "StackManagerClient":
        return cls(
            project_id=cfg.GCP_PROJECT_ID,
            region=cfg.GCP_REGION,
            template_url=cfg.TEMPLATE_URL,
            service_account=cfg.STACK_SERVICE_ACCOUNT,
            operation_timeout=cfg.STACK_OPERATION_TIMEOUT,
            wait_for_completion=cfg.STACK_WAIT_FOR_COMPLETION,
            is_local=cfg.USE_LOCAL_STACKS,
            client=client
        )

    @property
    def client(self):
        """Lazy-load Infrastructure Manager client."""
        if self._client is None:
            try:
                from google.cloud import config_v1
                self._client = config_v1.ConfigClient()
            except ImportError:
                raise RuntimeError("google-cloud-config package not installed")
        return self._client

    @property
    def parent(self) -> str:
        return f"projects/{self.project_id}/locations/{self.region}"

    def deployment_name(self, tenant_name: str) -> str:
        return f"{self.parent}/deployments/{stack_id_for(tenant_name)}"

    def _service_account_name(self) -> str:
        if self.service_account.startswith("projects/"):
            return self.service_account
        return f"projects/{self.project_id}/serviceAccounts/{self.service_account}"

    def create_stack(self, tenant_name: str) -> StackResult:
        """
        Create the tenant's deployment from the shared blueprint.

        Infrastructure Manager never rolls back a failed apply, so a failed
        creation keeps its partial resources for inspection.

        Raises:
            StackAlreadyExists: a deployment for this tenant already exists
            BackendUnavailable: any other backend failure or timeout
        """
        from google.cloud import config_v1

        name = self.deployment_name(tenant_name)
        if self.is_local:
            logger.info(f"Local mode: create deployment {name} for {tenant_name} (simulated)")
            return StackResult(tenant_name, name, "Simulated deployment created")

        deployment = config_v1.Deployment(
            terraform_blueprint=config_v1.TerraformBlueprint(
                gcs_source=self.template_url,
                input_values={
                    "tenant_name": config_v1.TerraformVariable(input_value=tenant_name),
                },
            ),
            service_account=self._service_account_name(),
            labels={"managed-by": "tenant-provisioner"},
        )

        try:
            operation = self.client.create_deployment(
                parent=self.parent,
                deployment=deployment,
                deployment_id=stack_id_for(tenant_name),
                timeout=self.operation_timeout
            )
            self._wait(operation, name)
        except AlreadyExists as e:
            raise StackAlreadyExists(tenant_name) from e
        except (GoogleAPIError, concurrent.futures.TimeoutError) as e:
            raise BackendUnavailable(f"Failed to create deployment {name}: {e}", e) from e

        return StackResult(tenant_name, name, f"Deployment requested: {name}")

    def delete_stack(self, tenant_name: str) -> StackResult:
        """
        Delete the tenant's deployment and the resources it manages.

        Raises:
            StackNotFound: there is no deployment for this tenant
            BackendUnavailable: any other backend failure or timeout
        """
        from google.cloud import config_v1

        name = self.deployment_name(tenant_name)
        if self.is_local:
            logger.info(f"Local mode: delete deployment {name} for {tenant_name} (simulated)")
            return StackResult(tenant_name, name, "Simulated deployment deleted")

        request = config_v1.DeleteDeploymentRequest(
            name=name,
            delete_policy=config_v1.DeleteDeploymentRequest.DeletePolicy.DELETE,
        )

        try:
            operation = self.client.delete_deployment(request=request, timeout=self.operation_timeout)
            self._wait(operation, name)
        except NotFound as e:
            raise StackNotFound(tenant_name) from e
        except (GoogleAPIError, concurrent.futures.TimeoutError) as e:
            raise BackendUnavailable(f"Failed to delete deployment {name}: {e}", e) from e

        return StackResult(tenant_name, name, f"Deletion requested: {name}")

    def get_stack_state(self, tenant_name: str) -> Optional[str]:
        """Get the deployment state name, or None if it does not exist."""
        if self.is_local:
            return None

        try:
            deployment = self.client.get_deployment(
                name=self.deployment_name(tenant_name),
                timeout=self.operation_timeout
            )
        except NotFound:
            return None
        except GoogleAPIError as e:
            raise BackendUnavailable(f"Failed to read deployment for {tenant_name}: {e}", e) from e
        return deployment.state.name

    def _wait(self, operation, name: str):
        if not self.wait_for_completion:
            return
        # Raises on timeout or when the operation itself failed
        operation.result(timeout=self.operation_timeout)
        logger.info(f"Operation on {name} completed")
