# app/services/storage_service.py

import os
import json
import logging
import mimetypes
import uuid
from datetime import datetime
from typing import Optional

from google.cloud import storage

from ..errors import StorageError
from ..ports import remaining_timeout

logger = logging.getLogger(__name__)

PUBLIC_URL_BASE = "https://storage.googleapis.com"


class StorageService:
    def __init__(self, bucket_name: str, credentials_json_string: Optional[str] = None,
                 make_public: bool = False, client: Optional[storage.Client] = None):
        """
        Connects to the GCS bucket. Credentials come from the service account
        JSON string when one is given, otherwise from Application Default Credentials.
        """
        if client is None:
            if credentials_json_string:
                creds_dict = json.loads(credentials_json_string)
                client = storage.Client.from_service_account_info(creds_dict)
            else:
                client = storage.Client()
        self.client = client
        self.bucket_name = bucket_name
        self.bucket = self.client.bucket(bucket_name)
        self.make_public = make_public
        logger.info("Using GCS bucket: %s", bucket_name)

    @staticmethod
    def object_name_for(filename: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now()
        _, ext = os.path.splitext(filename or "")
        return f"receipts/{now:%Y/%m}/{uuid.uuid4()}{ext.lower()}"

    def upload(self, image: bytes, filename: str, deadline: Optional[float] = None) -> str:
        """
        Uploads the image bytes and returns the object's public URL.
        """
        blob_name = self.object_name_for(filename)
        content_type = mimetypes.guess_type(filename or "")[0] or "application/octet-stream"
        try:
            timeout = remaining_timeout(deadline)
            blob = self.bucket.blob(blob_name)
            logger.info("Uploading %s to gs://%s/%s", filename, self.bucket_name, blob_name)
            if timeout is None:
                blob.upload_from_string(image, content_type=content_type)
            else:
                blob.upload_from_string(image, content_type=content_type, timeout=timeout)
            if self.make_public:
                blob.make_public()
        except Exception as e:
            raise StorageError(f"upload to gs://{self.bucket_name}/{blob_name} failed: {e}") from e

        public_url = f"{PUBLIC_URL_BASE}/{self.bucket_name}/{blob_name}"
        logger.info("File available at %s", public_url)
        return public_url

    def close(self):
        self.client.close()
