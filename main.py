"""
FastAPI Backend for the Optical Measurement Engine.
Provides endpoints for measuring PD, optical centers and segment heights.
"""

import base64
from typing import Any, Dict, List, Optional

import cv2
import numpy as np
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from measurement_service import get_measurement_service

# Create FastAPI app
app = FastAPI(
    title="Optical Measurement API",
    description="API for measuring pupillary distance and lens fitting parameters using a reference object",
    version="1.0.0"
)

# Add CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class CalibrationHint(BaseModel):
    """Caller-asserted calibration object."""
    object_type: str = "credit_card"
    real_size_mm: Optional[float] = None


class ImageMeasurementRequest(BaseModel):
    """Request with base64 encoded image and calibration edge points."""
    image: str
    calibration_hint: CalibrationHint = Field(default_factory=CalibrationHint)
    calibration_points: List[List[float]]


class LandmarkMeasurementRequest(BaseModel):
    """Request with landmarks from an external detector."""
    landmarks: Dict[str, Any]
    calibration_hint: CalibrationHint = Field(default_factory=CalibrationHint)
    detection_confidence: float
    lighting: Optional[str] = None


def decode_base64_image(base64_str: str) -> np.ndarray:
    """Decode base64 image string to numpy array."""
    if ',' in base64_str:
        base64_str = base64_str.split(',')[1]

    img_bytes = base64.b64decode(base64_str)
    nparr = np.frombuffer(img_bytes, np.uint8)
    image = cv2.imdecode(nparr, cv2.IMREAD_COLOR)

    if image is None:
        raise ValueError("Failed to decode image")

    return image


def _respond(result: Dict[str, Any]) -> JSONResponse:
    """Return successful measurements, raise 422 with the structured error otherwise."""
    if not result['success']:
        raise HTTPException(status_code=422, detail=result['error'])
    return JSONResponse(content=result)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Optical Measurement API"}


@app.post("/api/optical-measurement/landmarks")
async def measure_from_landmarks(request: LandmarkMeasurementRequest):
    """Measure from caller-supplied landmarks."""
    try:
        service = get_measurement_service()
        result = service.measure_landmarks(
            request.landmarks,
            request.calibration_hint.object_type,
            request.detection_confidence,
            request.lighting,
            real_size_mm=request.calibration_hint.real_size_mm,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _respond(result)


@app.post("/api/optical-measurement")
async def measure_from_image(request: ImageMeasurementRequest):
    """Detect landmarks on the captured image and measure."""
    try:
        image = decode_base64_image(request.image)
        service = get_measurement_service()
        result = service.measure_image(
            image,
            request.calibration_hint.object_type,
            request.calibration_points,
            real_size_mm=request.calibration_hint.real_size_mm,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FileNotFoundError as e:
        raise HTTPException(status_code=503, detail=f"Landmark detector unavailable: {e}")
    return _respond(result)


if __name__ == "__main__":
    import uvicorn
    print("\n" + "="*60)
    print("  Optical Measurement API Server")
    print("="*60)
    print("\n  Starting server on http://0.0.0.0:8000")
    print("  API docs: http://localhost:8000/docs")
    print("\n" + "="*60 + "\n")

    uvicorn.run(app, host="0.0.0.0", port=8000)
