from fastapi import APIRouter, UploadFile, File, Form, Depends, status
from fastapi.responses import FileResponse
from portal.auth.deps import get_gateway, get_current_user
from portal.config import settings
from portal.db.gateway import PortalGateway
from portal.errors import FileTooLarge, NotFound
from portal.files.storage import FileStorage, get_storage
from portal.models.user import User
from portal.schemas.workflow import FileAccessIn, FileOut, ReviewIn
from portal.tasks.routes import check_reviewer_claim
from portal.visibility.resolver import find_visible, resolve
from portal.workflow import engine

router = APIRouter(prefix="/files", tags=["files"])

async def _read_upload(upload: UploadFile) -> bytes:
    data = await upload.read()
    if len(data) > settings.max_upload_mb * 1024 * 1024:
        raise FileTooLarge(f"{upload.filename} is larger than {settings.max_upload_mb}MB")
    return data

def _visible_file(gw: PortalGateway, user: User, file_id: str):
    record = find_visible(resolve(gw.snapshot(), user).files, file_id)
    if record is None:
        raise NotFound("File not found")
    return record

@router.get("", response_model=list[FileOut])
def list_files(gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    return resolve(gw.snapshot(), user).files

@router.post("", response_model=FileOut, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    description: str | None = Form(None),
    encryption_level: str = Form("standard", alias="encryptionLevel"),
    password: str | None = Form(None),
    gw: PortalGateway = Depends(get_gateway),
    storage: FileStorage = Depends(get_storage),
    user: User = Depends(get_current_user),
):
    data = await _read_upload(file)
    return engine.upload_file(gw, storage, user, file.filename or "upload", file.content_type,
                              data, description=description, encryption_level=encryption_level,
                              password=password or None)

@router.get("/{file_id}", response_model=FileOut)
def get_file(file_id: str, gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    return _visible_file(gw, user, file_id)

@router.put("/{file_id}", response_model=FileOut)
async def resubmit_file(
    file_id: str,
    file: UploadFile = File(...),
    description: str | None = Form(None),
    expected_version: int | None = Form(None, alias="expectedVersion"),
    gw: PortalGateway = Depends(get_gateway),
    storage: FileStorage = Depends(get_storage),
    user: User = Depends(get_current_user),
):
    _visible_file(gw, user, file_id)
    data = await _read_upload(file)
    return engine.resubmit_file(gw, storage, user, file_id, file.filename, file.content_type, data,
                                description=description, expected_version=expected_version)

@router.put("/{file_id}/review", response_model=FileOut)
def review_file(file_id: str, body: ReviewIn, gw: PortalGateway = Depends(get_gateway),
                user: User = Depends(get_current_user)):
    check_reviewer_claim(body, user)
    _visible_file(gw, user, file_id)
    return engine.review_file(gw, user, file_id, body.review_status, body.review_comment,
                              expected_version=body.expected_version)

@router.post("/{file_id}/download")
def download_file(file_id: str, body: FileAccessIn | None = None,
                  gw: PortalGateway = Depends(get_gateway),
                  storage: FileStorage = Depends(get_storage),
                  user: User = Depends(get_current_user)):
    record = _visible_file(gw, user, file_id)
    engine.unlock_file(record, body.password if body else None)
    path = storage.path_for(record.content_ref)
    if not path.exists():
        raise NotFound("File content not found")
    return FileResponse(path, media_type=record.mime_type, filename=record.name)

@router.delete("/{file_id}")
def delete_file(file_id: str, gw: PortalGateway = Depends(get_gateway),
                storage: FileStorage = Depends(get_storage),
                user: User = Depends(get_current_user)):
    _visible_file(gw, user, file_id)
    engine.delete_file(gw, storage, user, file_id)
    return {"ok": True, "id": file_id}
