# fulfillment/services/storage_service.py
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from fulfillment.domain.errors import UnavailableError
from fulfillment.utils.settings import AWS_REGION, AWS_S3_BUCKET, SIGNED_URL_MAX_SECONDS
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


def clamp_ttl(ttl_seconds: int) -> int:
    return max(1, min(int(ttl_seconds), SIGNED_URL_MAX_SECONDS))


class StorageService:
    """
    Podpisane URL-e S3:
    -tylko GET (get_object)
    -jeden obiekt, bez wildcardow
    -waznosc przycieta do SIGNED_URL_MAX_SECONDS, niezaleznie od wywolujacego
    """

    def __init__(self, bucket: str | None = None, region: str | None = None, client=None):
        self.bucket = bucket or AWS_S3_BUCKET
        self.s3 = client or boto3.client(
            "s3",
            region_name=region or AWS_REGION,
            config=Config(signature_version="s3v4"),
        )

        if not self.bucket:
            logger.warning("AWS_S3_BUCKET not configured, file downloads will fail")

    def sign(self, object_key: str, ttl_seconds: int) -> str:
        expires_in = clamp_ttl(ttl_seconds)

        try:
            url = self.s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": object_key},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to generate signed URL: {e}")
            raise UnavailableError("Failed to generate download link") from e

        logger.info(f"Generated signed URL (expires in {expires_in}s)")
        return url
