"""Reconciliation of ASecret resources.

One call to Reconciler.reconcile runs a full cycle for one ASecret:

    fetch vault -> fetch cluster secret -> merge -> validate
    -> write cluster secret -> write vault (if needed) -> update status

and returns the delay before the next cycle. Nothing is cached between
cycles; the caller is expected to serialize cycles per ASecret.
"""

from datetime import timedelta

from icecream import ic

from asecret_sync import console
from asecret_sync.config import OperatorConfig
from asecret_sync.core.cluster import Cluster
from asecret_sync.core.vault import SecretsManager, VaultWriter
from asecret_sync.exceptions import GeneratorNotFoundError, SecretSyncError, SecretValidationError
from asecret_sync.models import ObjectRef, Outcome, ReconcileResult, SecretSpec
from asecret_sync.secrets.changes import needs_vault_update
from asecret_sync.secrets.generation import generate_random_string, validate_generator_spec
from asecret_sync.secrets.merge import merge_secret_data


class Reconciler:
    """Keeps the managed Secret and its vault copy in sync.

    Attributes:
        cluster: The Kubernetes store.
        vault: The AWS Secrets Manager store.
        config: The operator configuration.
        writer: The vault writer built from ``vault`` and ``config``.

    """

    def __init__(self, cluster: Cluster, vault: SecretsManager, config: OperatorConfig) -> None:
        self.cluster: Cluster = cluster
        self.vault: SecretsManager = vault
        self.config: OperatorConfig = config
        self.writer: VaultWriter = VaultWriter(vault, config)

    def refresh_interval(self, spec: SecretSpec | None) -> timedelta:
        """Return the delay between successful cycles for an ASecret."""
        if spec is not None and spec.refresh_interval is not None and spec.refresh_interval > timedelta(0):
            return spec.refresh_interval
        return self.config.default_refresh_interval

    def generate_value(self, generator_name: str) -> str:
        """Generate a value with the named AGenerator."""
        return generate_random_string(self.cluster.get_generator(generator_name))

    def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        """Run one reconciliation cycle for an ASecret.

        Args:
            namespace: Namespace of the ASecret.
            name: Name of the ASecret.

        Returns:
            SUCCESS with the refresh interval; RETRYABLE_FAILURE with the
            short retry delay; VALIDATION_FAILURE with the refresh interval;
            or NOT_FOUND without a requeue when the ASecret is gone.

        """
        ref = ObjectRef(namespace=namespace, name=name)
        console.action(f"Reconciling ASecret {console.highlight(str(ref))}")

        spec: SecretSpec | None = None
        try:
            resource = self.cluster.get_asecret(namespace, name)
            if resource is None:
                console.info(f"ASecret {console.highlight(str(ref))} not found, nothing to do")
                return ReconcileResult(outcome=Outcome.NOT_FOUND)
            spec = SecretSpec.from_resource(resource)
            self._sync(spec)
        except SecretValidationError as e:
            console.error(f"ASecret {console.highlight(str(ref))} is invalid: {e}")
            return ReconcileResult(
                outcome=Outcome.VALIDATION_FAILURE,
                requeue_after=self.refresh_interval(spec),
                error=e,
            )
        except SecretSyncError as e:
            console.error(f"Failed to reconcile ASecret {console.highlight(str(ref))}: {e}")
            return ReconcileResult(
                outcome=Outcome.RETRYABLE_FAILURE,
                requeue_after=self.config.retry_delay,
                error=e,
            )

        requeue_after = self.refresh_interval(spec)
        console.success(f"ASecret {console.highlight(str(ref))} synced, next refresh in {requeue_after}")
        return ReconcileResult(outcome=Outcome.SUCCESS, requeue_after=requeue_after)

    def _sync(self, spec: SecretSpec) -> None:
        """Run the fetch, merge and write steps of a cycle."""
        vault_state = self.vault.get_secret(spec.aws_secret_path, spec.value_type, spec.data)
        cluster_state = self.cluster.get_secret(spec.namespace, spec.target_secret_name)

        data = merge_secret_data(
            spec,
            vault_state,
            cluster_state,
            self.generate_value,
            remove_remote_keys=self.config.remove_remote_keys,
        )
        ic(spec.name, sorted(data))

        self.cluster.write_secret(spec, data, cluster_state)

        if spec.only_import_remote:
            console.step("onlyImportRemote is set, vault secret left unchanged")
        elif needs_vault_update(spec, data, vault_state):
            self.writer.write(spec, data)
        else:
            console.step("Vault secret already holds every key")

        self.cluster.mark_synced(spec)

    def reconcile_generator(self, name: str) -> ReconcileResult:
        """Validate an AGenerator.

        Generators are passive; they are only checked so that an invalid
        one is reported before an ASecret uses it.

        Args:
            name: Name of the AGenerator.

        Returns:
            SUCCESS, NOT_FOUND, VALIDATION_FAILURE, or RETRYABLE_FAILURE
            when the cluster cannot be reached. Only the last is requeued.

        """
        console.action(f"Checking AGenerator {console.highlight(name)}")
        try:
            validate_generator_spec(self.cluster.get_generator(name))
        except GeneratorNotFoundError as e:
            console.info(str(e))
            return ReconcileResult(outcome=Outcome.NOT_FOUND, error=e)
        except SecretValidationError as e:
            console.error(f"AGenerator {console.highlight(name)} is invalid: {e}")
            return ReconcileResult(outcome=Outcome.VALIDATION_FAILURE, error=e)
        except SecretSyncError as e:
            console.error(f"Failed to read AGenerator {console.highlight(name)}: {e}")
            return ReconcileResult(outcome=Outcome.RETRYABLE_FAILURE, requeue_after=self.config.retry_delay, error=e)
        console.success(f"AGenerator {console.highlight(name)} is valid")
        return ReconcileResult(outcome=Outcome.SUCCESS)
