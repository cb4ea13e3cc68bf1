"""
Uploaded files: signed download links and deletion.
The row in "files" holds the object key in file_url; the object lives in FILES_BUCKET.
"""
import logging
import os

from api.errors import FileActionError
from api.invalidation import revalidatePath

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

FILES_BUCKET = os.environ.get("FILES_BUCKET", "")
FILES_TABLE = "files"
FILES_PATH = "/admin/files"
DOWNLOAD_URL_EXPIRES = 60


def _s3_client(region=None):
    import boto3
    region = region or os.environ.get("AWS_REGION", "us-east-1")
    return boto3.client("s3", region_name=region)


def _file_key(store, file_id):
    result = store.get(FILES_TABLE, file_id)
    if result.get("error"):
        raise LookupError(result["error"].get("message", "file lookup failed"))
    key = (result.get("data") or {}).get("file_url")
    if not key:
        raise LookupError(f"file {file_id} has no file_url")
    return key


def download_file(store, file_id, s3=None):
    """Return a presigned GET URL for the file, valid DOWNLOAD_URL_EXPIRES seconds."""
    try:
        if not FILES_BUCKET:
            raise RuntimeError("FILES_BUCKET not set")
        key = _file_key(store, file_id)
        s3 = s3 or _s3_client()
        return s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": FILES_BUCKET, "Key": key},
            ExpiresIn=DOWNLOAD_URL_EXPIRES,
        )
    except Exception as e:
        logger.exception("download_file error: file_id=%s", file_id)
        raise FileActionError("Failed to download file") from e


def delete_file(store, file_id, s3=None, revalidate=revalidatePath):
    """Remove the stored object, then the row. Invalidates the files listing."""
    try:
        if not FILES_BUCKET:
            raise RuntimeError("FILES_BUCKET not set")
        key = _file_key(store, file_id)
        s3 = s3 or _s3_client()
        s3.delete_object(Bucket=FILES_BUCKET, Key=key)
        result = store.delete(FILES_TABLE, file_id)
        if result.get("error"):
            raise RuntimeError(result["error"].get("message", "row delete failed"))
        revalidate(FILES_PATH)
        return {"success": True}
    except Exception as e:
        logger.exception("delete_file error: file_id=%s", file_id)
        raise FileActionError("Failed to delete file") from e
