"""EC2 implementation of the HostController interface."""

import logging

from botocore.exceptions import BotoCoreError, ClientError

from transcode_worker.exceptions import LifecycleError

from .interfaces import HostController

logger = logging.getLogger(__name__)


class Ec2HostController(HostController):
    """Stops the EC2 instance the worker runs on."""

    def __init__(self, client, instance_id: str):
        self._client = client
        self._instance_id = instance_id

    def stop(self) -> None:
        try:
            self._client.stop_instances(InstanceIds=[self._instance_id])
        except (BotoCoreError, ClientError) as e:
            logger.exception(
                "Instance stop failed", extra={"instance_id": self._instance_id}
            )
            raise LifecycleError(self._instance_id, e) from e
        logger.info("Instance stop requested", extra={"instance_id": self._instance_id})
