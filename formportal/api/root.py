from fastapi import APIRouter

router = APIRouter()


@router.get("/")
def root():
    return {
        "name": "Form Portal Backend",
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
    }
