from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from tryon_studio.config import settings
from tryon_studio.controller import StudioController
from tryon_studio.request_builder import QualityTier, Resolution
from tryon_studio.state import IMAGE_SLOTS, AppStatus

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="tryon_studio")

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

# One studio session per process; results live only as long as the process.
studio = StudioController()


def _get_studio() -> StudioController:
    return studio


def _check_slot(slot: str) -> str:
    if slot not in IMAGE_SLOTS:
        raise HTTPException(status_code=404, detail=f"unknown image slot '{slot}'")
    return slot


def _state_summary(controller: StudioController) -> dict[str, Any]:
    st = controller.state
    s = st.settings
    return {
        "status": st.status.value,
        "error_message": st.error_message,
        "results": [{"id": r.id, "download_url": f"/results/{r.id}/download"} for r in st.results],
        "settings": {
            "has_credential": controller.credential_available,
            "garment_image": s.garment_image is not None,
            "model_image": s.model_image is not None,
            "scene_image": s.scene_image is not None,
            "instruction": s.instruction,
            "requested_count": s.requested_count,
            "quality_tier": s.quality_tier.value,
            "resolution": s.resolution.value,
        },
    }


@app.get("/", response_class=HTMLResponse)
def index(request: Request):
    controller = _get_studio()
    st = controller.state
    return templates.TemplateResponse(
        request=request,
        name="index.html",
        context={
            "state": st,
            "settings": st.settings,
            "slots": IMAGE_SLOTS,
            "counts": list(range(1, settings.max_image_count + 1)),
            "tiers": [t.value for t in QualityTier],
            "resolutions": [r.value for r in Resolution],
            "credential_available": controller.credential_available,
            "generating": st.status is AppStatus.GENERATING,
            "notice": request.query_params.get("notice") or "",
        },
    )


@app.get("/state")
def get_state():
    return _state_summary(_get_studio())


@app.post("/images/{slot}")
async def upload_image(slot: str, file: UploadFile = File(...)):
    _check_slot(slot)
    content = await file.read()
    accepted = _get_studio().select_image(
        slot,
        content,
        content_type=file.content_type,
        filename=file.filename,
    )
    if not accepted:
        return RedirectResponse(url="/?notice=not-an-image", status_code=303)
    return RedirectResponse(url="/", status_code=303)


@app.post("/images/{slot}/clear")
def clear_image(slot: str):
    _check_slot(slot)
    _get_studio().clear_image(slot)
    return RedirectResponse(url="/", status_code=303)


@app.post("/settings")
def update_settings(
    credential: str = Form(""),
    instruction: str = Form(""),
    requested_count: int = Form(1),
    quality_tier: str = Form(QualityTier.FAST.value),
    resolution: str = Form(Resolution.R1K.value),
    forget_credential: bool = Form(False),
):
    changes: dict[str, Any] = {
        "instruction": instruction,
        "requested_count": requested_count,
        "quality_tier": quality_tier,
        "resolution": resolution,
    }
    # The key is never echoed back into the page, so a blank field keeps the stored one.
    if forget_credential:
        changes["credential"] = None
    elif credential.strip():
        changes["credential"] = credential
    try:
        _get_studio().update_settings(**changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return RedirectResponse(url="/", status_code=303)


@app.post("/generate")
async def generate():
    await _get_studio().generate()
    return RedirectResponse(url="/", status_code=303)


@app.get("/results/{image_id}/download")
def download_result(image_id: str):
    try:
        filename, media_type, content = _get_studio().download(image_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="result not found")
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
