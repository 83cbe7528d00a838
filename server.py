#!/usr/bin/env python3
"""
GlitchCam — FastAPI Backend
Accepts frames from a capture client, runs them through the shared
corruption engine, and returns previews.
"""

import base64
import logging
import os
import sys
from io import BytesIO

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from fastapi import FastAPI, UploadFile, File, HTTPException
from pydantic import BaseModel
import numpy as np
from PIL import Image

from core.engine import GlitchEngine
from core.formats import GlitchError, UnknownCorruptionMode, UnsupportedFormat, list_modes
from core.pattern import DEFAULT_DEST, DEFAULT_SOURCE, describe_bytes
from core.safety import SafetyError, as_rgba, validate_pattern_text
from core.throttle import FrameThrottle
from glitchcam import __version__

app = FastAPI(title="GlitchCam")

MAX_UPLOAD_MB = 20

# One engine per server; the throttle keeps a single call in flight
_engine = GlitchEngine()
_throttle = FrameThrottle(_engine)

ERROR_RECOVERY = {
    "invalid_image": {"code": "INVALID_IMAGE", "hint": "Upload a PNG, JPEG, WEBP or BMP frame.", "action": None},
    "invalid_frame": {"code": "INVALID_FRAME", "hint": "Frames must be 8-bit RGB/RGBA and at most 4K.", "action": None},
    "file_too_large": {"code": "FILE_TOO_LARGE", "hint": f"Frames must be under {MAX_UPLOAD_MB}MB.", "action": None},
    "pattern_too_long": {"code": "PATTERN_TOO_LONG", "hint": "Use at most 3 characters per pattern.", "action": None},
    "unknown_mode": {"code": "UNKNOWN_MODE", "hint": "Use one of: jpeg, png, webp, bmp.", "action": "settings"},
    "unsupported_format": {"code": "UNSUPPORTED_FORMAT", "hint": "This codec can't write that format. Pick another mode.", "action": "settings"},
    "processing_failed": {"code": "PROCESSING_FAILED", "hint": "Try again, or switch corruption mode.", "action": "retry"},
}


def _error_detail(key: str, message: str) -> dict:
    """Build structured error detail dict for the client."""
    recovery = ERROR_RECOVERY.get(key, {})
    return {
        "detail": message,
        "code": recovery.get("code", "UNKNOWN"),
        "hint": recovery.get("hint", ""),
        "action": recovery.get("action"),
    }


def _glitch_error_key(error: GlitchError) -> str:
    if isinstance(error, UnknownCorruptionMode):
        return "unknown_mode"
    if isinstance(error, UnsupportedFormat):
        return "unsupported_format"
    return "processing_failed"


class PatternSettings(BaseModel):
    source_chars: str = ""
    dest_chars: str = ""
    mode: str = "jpeg"
    header_protection: bool = True
    active: bool = False


def _settings_payload() -> dict:
    config = _engine.config
    return {
        "source_chars": config.source_chars,
        "dest_chars": config.dest_chars,
        "source_hint": describe_bytes(config.source_chars),
        "dest_hint": describe_bytes(config.dest_chars),
        "mode": config.mode,
        "header_protection": config.header_protection,
        "active": config.active,
    }


def _frame_to_data_url(frame: np.ndarray) -> str:
    """Encode an RGBA frame as a PNG data URL for an img tag."""
    buf = BytesIO()
    Image.fromarray(frame).save(buf, format="PNG")
    b64 = base64.b64encode(buf.getvalue()).decode()
    return f"data:image/png;base64,{b64}"


def _decode_upload(content: bytes) -> np.ndarray:
    try:
        img = Image.open(BytesIO(content))
        img.load()
        frame = np.array(img.convert("RGBA"))
    except Exception as e:
        raise HTTPException(status_code=400, detail=_error_detail(
            "invalid_image", f"Could not read uploaded frame: {str(e)[:100]}"))
    try:
        return as_rgba(frame)
    except SafetyError as e:
        raise HTTPException(status_code=400, detail=_error_detail("invalid_frame", str(e)))


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "version": __version__}


@app.get("/api/modes")
async def get_modes():
    return {"modes": list_modes()}


@app.get("/api/settings")
async def get_settings():
    return _settings_payload()


@app.post("/api/settings")
async def update_settings(settings: PatternSettings):
    """Replace the engine settings. Empty pattern fields fall back to a/b."""
    source = settings.source_chars or DEFAULT_SOURCE
    dest = settings.dest_chars or DEFAULT_DEST
    try:
        validate_pattern_text(source)
        validate_pattern_text(dest)
    except SafetyError as e:
        raise HTTPException(status_code=400, detail=_error_detail("pattern_too_long", str(e)))

    # Mode is stored as given; an unknown one is reported when a frame is processed
    _engine.set_pattern(source, dest)
    _engine.set_mode(settings.mode)
    _engine.set_header_protection(settings.header_protection)
    _engine.set_active(settings.active)
    return _settings_payload()


@app.post("/api/frame")
async def process_frame(file: UploadFile = File(...)):
    """Run one captured frame through the engine (throttled)."""
    content = await file.read()
    if len(content) > MAX_UPLOAD_MB * 1024 * 1024:
        raise HTTPException(status_code=400, detail=_error_detail(
            "file_too_large", f"Frame is {len(content) / 1024 / 1024:.1f}MB"))

    frame = _decode_upload(content)
    try:
        result, fresh = await _throttle.submit(frame)
    except GlitchError as e:
        raise HTTPException(status_code=400, detail=_error_detail(_glitch_error_key(e), str(e)))
    except Exception as e:
        logging.exception("Frame processing failed")
        raise HTTPException(status_code=500, detail=_error_detail(
            "processing_failed", f"Frame processing failed: {str(e)[:100]}"))

    report = _engine.last_report if fresh else None
    return {
        "preview": _frame_to_data_url(result),
        "fresh": fresh,
        "replacements": report.replacement_count if report else 0,
        "decoded": _engine.last_decoded if fresh else None,
    }


def start():
    import uvicorn
    print("GlitchCam — launching at http://127.0.0.1:7860")
    uvicorn.run(app, host="127.0.0.1", port=7860, log_level="warning")


if __name__ == "__main__":
    start()
