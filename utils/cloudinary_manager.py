"""
Cloudinary Media Management
Handles complaint image and profile image uploads to Cloudinary
"""

import cloudinary
import cloudinary.uploader
import cloudinary.api
from fastapi import UploadFile, HTTPException, status
from config import settings
from utils.errors import BadRequestError
import logging
import os
from typing import List, Optional

# Set up logging
logger = logging.getLogger(__name__)

# Configure Cloudinary
cloudinary.config(
    cloud_name=settings.CLOUDINARY_CLOUD_NAME,
    api_key=settings.CLOUDINARY_API_KEY,
    api_secret=settings.CLOUDINARY_API_SECRET
)

COMPLAINTS_FOLDER = "complaints"
PROFILES_FOLDER = "profiles"


def _extension(filename: Optional[str]) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


class CloudinaryManager:
    """Manager for all Cloudinary operations"""

    @staticmethod
    async def upload_file(
        file: UploadFile,
        folder: str,
        allowed_extensions: List[str],
        max_size: int,
        public_id: Optional[str] = None
    ) -> dict:
        """
        Upload file to Cloudinary

        Args:
            file: FastAPI UploadFile object
            folder: folder under CLOUDINARY_FOLDER_PREFIX (e.g. "complaints", "profiles")
            allowed_extensions: lower-case extensions accepted for this upload
            max_size: size cap in bytes
            public_id: Optional custom public ID for the file

        Returns:
            Dict with upload details including url and public_id

        Raises:
            BadRequestError for a disallowed extension, 413 for an oversized file,
            500 if the storage call fails
        """
        ext = _extension(file.filename)
        if ext not in allowed_extensions:
            raise BadRequestError(
                f"File type not allowed: {file.filename}. Allowed: {', '.join(allowed_extensions)}"
            )

        contents = await file.read()
        if len(contents) > max_size:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File size exceeds maximum allowed size of {max_size / (1024*1024):.0f}MB"
            )
        await file.seek(0)

        # PDFs go up as raw assets, everything else as images
        resource_type = "raw" if ext == "pdf" else "image"

        try:
            full_folder = f"{settings.CLOUDINARY_FOLDER_PREFIX}/{folder}"

            response = cloudinary.uploader.upload(
                contents,
                folder=full_folder,
                public_id=public_id,
                resource_type=resource_type,
                overwrite=True,
                invalidate=True
            )

            logger.info(f"File uploaded successfully: {response.get('public_id')}")

            return {
                "public_id": response.get("public_id"),
                "url": response.get("secure_url"),
                "resource_type": response.get("resource_type"),
                "format": response.get("format"),
                "size": response.get("bytes")
            }

        except Exception as e:
            logger.error(f"Cloudinary upload error: {str(e)}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"File upload failed: {str(e)}"
            )

    @staticmethod
    async def upload_files(
        files: List[UploadFile],
        folder: str,
        allowed_extensions: List[str],
        max_size: int,
        max_files: int
    ) -> List[str]:
        """Validate a batch then upload each file; returns the stored URLs in order"""
        if not files:
            raise BadRequestError("No files uploaded")
        if len(files) > max_files:
            raise BadRequestError(f"A maximum of {max_files} files can be uploaded at once")

        for file in files:
            if _extension(file.filename) not in allowed_extensions:
                raise BadRequestError(
                    f"File type not allowed: {file.filename}. Allowed: {', '.join(allowed_extensions)}"
                )

        urls = []
        for file in files:
            result = await CloudinaryManager.upload_file(file, folder, allowed_extensions, max_size)
            urls.append(result["url"])
        return urls

    @staticmethod
    def delete_file(url_or_public_id: str) -> bool:
        """
        Delete file from Cloudinary

        Accepts either a Cloudinary URL or a bare public id. Legacy bare
        filenames that never lived in Cloudinary are skipped.

        Returns:
            True if successful, False otherwise
        """
        public_id = url_or_public_id
        resource_type = "image"
        if url_or_public_id.startswith("http"):
            public_id = CloudinaryManager.extract_public_id(url_or_public_id)
            if not public_id:
                logger.warning(f"Not a Cloudinary URL, skipping delete: {url_or_public_id}")
                return False
            if "/raw/upload/" in url_or_public_id:
                resource_type = "raw"

        try:
            result = cloudinary.uploader.destroy(public_id, resource_type=resource_type)
            if result.get("result") == "ok":
                logger.info(f"File deleted successfully: {public_id}")
                return True
            else:
                logger.warning(f"File deletion returned unexpected result: {result}")
                return False
        except Exception as e:
            logger.error(f"Error deleting file {public_id}: {str(e)}", exc_info=True)
            return False

    @staticmethod
    def extract_public_id(url: str) -> Optional[str]:
        """
        Extract public_id from a Cloudinary URL

        Args:
            url: Cloudinary URL

        Returns:
            Public ID or None if not a Cloudinary URL
        """
        # Example URL: https://res.cloudinary.com/demo/image/upload/v1234567890/complaints-app/complaints/file.jpg
        if "cloudinary.com" not in url:
            return None

        parts = url.split("/upload/")
        if len(parts) < 2:
            return None

        segments = parts[1].split("/")
        # Drop the version segment (v123...) when present
        if segments and segments[0].startswith("v") and segments[0][1:].isdigit():
            segments = segments[1:]
        path = "/".join(segments)
        if "/raw/upload/" in url:
            # Raw assets keep their extension in the public id
            return path
        return path.rsplit(".", 1)[0]

    @staticmethod
    def health_check() -> bool:
        """
        Check if Cloudinary is properly configured and accessible

        Returns:
            True if connection successful, False otherwise
        """
        try:
            result = cloudinary.api.ping()
            if result.get("status") == "ok":
                logger.info("Cloudinary connection successful")
                return True
            else:
                logger.error(f"Cloudinary health check failed: {result}")
                return False
        except Exception as e:
            logger.error(f"Cloudinary connection error: {str(e)}")
            return False


# Convenience functions

def resolve_media_url(value: Optional[str], legacy_folder: str) -> Optional[str]:
    """Stored references are full URLs; legacy rows hold a bare filename served from BASE_URL"""
    if not value:
        return None
    if value.startswith("http://") or value.startswith("https://"):
        return value
    return f"{settings.BASE_URL.rstrip('/')}/uploads/{legacy_folder}/{value}"


def build_image_urls(images: Optional[List[str]]) -> List[dict]:
    """Render complaint image references as [{file_name, file_url}]"""
    return [
        {
            "file_name": os.path.basename(image.split("?", 1)[0]),
            "file_url": resolve_media_url(image, COMPLAINTS_FOLDER)
        }
        for image in (images or [])
    ]


def profile_image_url(value: Optional[str]) -> Optional[str]:
    return resolve_media_url(value, PROFILES_FOLDER)


async def upload_complaint_images(files: List[UploadFile], complaint_id: int) -> List[str]:
    """Upload complaint images (1-5 files, jpg/jpeg/png/pdf, 5MB each)"""
    return await CloudinaryManager.upload_files(
        files,
        folder=f"{COMPLAINTS_FOLDER}/{complaint_id}",
        allowed_extensions=settings.COMPLAINT_IMAGE_EXTENSIONS,
        max_size=settings.COMPLAINT_IMAGE_MAX_SIZE,
        max_files=settings.COMPLAINT_IMAGE_MAX_FILES
    )


async def upload_profile_image(file: UploadFile) -> str:
    """Upload user profile image (jpg/jpeg/png, 2MB)"""
    if file is None:
        raise BadRequestError("No file uploaded")
    result = await CloudinaryManager.upload_file(
        file,
        folder=PROFILES_FOLDER,
        allowed_extensions=settings.PROFILE_IMAGE_EXTENSIONS,
        max_size=settings.PROFILE_IMAGE_MAX_SIZE
    )
    return result["url"]
