from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from consultant.dependencies import get_uploader
from consultant.logging_config import get_logger
from consultant.schemas.upload import UploadResponse
from consultant.services.errors import ConsultantError, ProfileNotFound
from consultant.services.upload_service import KnowledgeUploader, detect_file_type

logger = get_logger("upload")

router = APIRouter()


@router.post("/upload", response_model=UploadResponse)
async def upload_knowledge_file(
    file: UploadFile = File(...),
    profile_name: str = Form(""),
    uploader: KnowledgeUploader = Depends(get_uploader),
):
    """Replace a knowledge file in the profile's assistant vector store."""
    if not profile_name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="profile name is required")

    file_name = file.filename or "upload"
    content = await file.read()

    try:
        file_id = await uploader.upload(content, file_name, profile_name.strip())
    except ProfileNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ConsultantError as exc:
        logger.error(
            "Upload failed",
            extra={"context": {"file_name": file_name, "profile_name": profile_name, "error": str(exc)}},
        )
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    return UploadResponse(file_id=file_id, file_type=detect_file_type(file_name))
