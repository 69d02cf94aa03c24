from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from resume_service.auth import require_user
from resume_service.logger import get_logger
from resume_service.models import ErrorResponse, LoginRequest, ProtectedResponse, TokenResponse, UploadResponse
from resume_service.tokens import TokenService
from resume_service.uploads import COVERLETTER_FILE, COVERLETTER_UPLOAD, UploadHandler

logger = get_logger(__name__)

AUTH_ERRORS = {401: {"model": ErrorResponse}}
UPLOAD_ERRORS = {
    **AUTH_ERRORS,
    400: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    415: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def build_router(tokens: TokenService, uploads: UploadHandler) -> APIRouter:
    router = APIRouter()
    current_user = require_user(tokens)

    @router.get("/", response_class=PlainTextResponse)
    def root() -> str:
        return "ResumeService API running"

    @router.post("/login", response_model=TokenResponse, responses={400: {"model": ErrorResponse}})
    def login(payload: LoginRequest):
        token = tokens.issue(payload.username)
        logger.info("Issued token for %s", payload.username)
        return TokenResponse(token=token)

    @router.get("/protected", response_model=ProtectedResponse, responses=AUTH_ERRORS)
    def protected(user: dict = Depends(current_user)):
        return ProtectedResponse(message="Protected data", user=user)

    @router.post("/coverletter/upload", response_model=UploadResponse, responses=UPLOAD_ERRORS)
    async def upload_coverletter(request: Request, _: dict = Depends(current_user)):
        return await uploads.store(request, COVERLETTER_UPLOAD)

    @router.post("/coverletter/file", response_model=UploadResponse, responses=UPLOAD_ERRORS)
    async def upload_coverletter_file(request: Request, _: dict = Depends(current_user)):
        return await uploads.store(request, COVERLETTER_FILE)

    return router
