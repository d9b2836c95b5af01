"""
Détection d'anomalies sur image (fal.ai, Moondream 3 detect)

Même principe que l'upload + polling Gladia : on envoie l'image au stockage,
on soumet la requête à la file d'attente, puis on interroge le statut.
"""

import asyncio
import base64
import binascii
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import unquote_to_bytes

import httpx

from .errors import AnomalyDetectionError, MissingAPIKeyError
from .schemas import AnomalyDetectionResult, DetectAnomalyResponse, DetectedObject

logger = logging.getLogger(__name__)


# ========== CONFIGURATION ==========

DETECT_ENDPOINT = "fal-ai/moondream3-preview/detect"
FAL_QUEUE_URL = "https://queue.fal.run"
FAL_REST_URL = "https://rest.alpha.fal.ai"

DEFAULT_PROMPT = "anomaly"
DETECTION_TIMEOUT_S = 60.0
POLL_INTERVAL_S = 0.5

NO_ANOMALIES_TEXT = "No anomalies detected in the image."

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]+)*?)(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


def _auth_headers(fal_key: str) -> Dict[str, str]:
    return {"Authorization": f"Key {fal_key}"}


def decode_data_uri(data_uri: str) -> Tuple[bytes, str]:
    """data:image/png;base64,.... -> (octets, type MIME)"""
    match = _DATA_URI_RE.match(data_uri)
    if not match:
        raise ValueError("Invalid data URI")

    mime = match.group("mime") or "application/octet-stream"
    payload = match.group("data")
    if match.group("b64"):
        try:
            return base64.b64decode(payload, validate=False), mime
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload: {e}") from e

    return unquote_to_bytes(payload), mime


# ========== STOCKAGE ==========

async def upload_image(
    data_uri: str,
    *,
    fal_key: str,
    client: httpx.AsyncClient,
    rest_url: str = FAL_REST_URL,
) -> str:
    """Envoie l'image sur le stockage fal.ai et renvoie son URL publique"""
    content, content_type = decode_data_uri(data_uri)
    file_name = f"upload.{_EXTENSIONS.get(content_type, 'bin')}"

    initiate = await client.post(
        f"{rest_url}/storage/upload/initiate",
        headers=_auth_headers(fal_key),
        json={"content_type": content_type, "file_name": file_name},
    )
    initiate.raise_for_status()
    upload = initiate.json()

    put = await client.put(upload["upload_url"], headers={"Content-Type": content_type}, content=content)
    put.raise_for_status()

    logger.info("Image uploaded to: %s", upload["file_url"])
    return upload["file_url"]


# ========== FILE D'ATTENTE ==========

async def subscribe(
    endpoint: str,
    arguments: Dict[str, Any],
    *,
    fal_key: str,
    client: httpx.AsyncClient,
    queue_url: str = FAL_QUEUE_URL,
    poll_interval: float = POLL_INTERVAL_S,
) -> Dict[str, Any]:
    """Soumet la requête, attend COMPLETED, renvoie le résultat"""
    submit = await client.post(f"{queue_url}/{endpoint}", headers=_auth_headers(fal_key), json=arguments)
    submit.raise_for_status()
    handle = submit.json()
    logger.info("fal.ai request queued: %s", handle.get("request_id"))

    seen_logs = 0
    while True:
        status_response = await client.get(
            handle["status_url"], headers=_auth_headers(fal_key), params={"logs": 1}
        )
        status_response.raise_for_status()
        status = status_response.json()
        state = status.get("status")

        if state == "IN_PROGRESS":
            logs = status.get("logs") or []
            for entry in logs[seen_logs:]:
                logger.info("[fal] %s", entry.get("message"))
            seen_logs = len(logs)
        elif state == "COMPLETED":
            break
        elif state not in ("IN_QUEUE", None):
            raise AnomalyDetectionError(f"Unexpected fal.ai status: {state}")

        await asyncio.sleep(poll_interval)

    result = await client.get(handle["response_url"], headers=_auth_headers(fal_key))
    result.raise_for_status()
    return result.json()


# ========== DÉTECTION ==========

async def detect_anomaly(
    image: str,
    prompt: str = DEFAULT_PROMPT,
    *,
    fal_key: Optional[str],
    client: Optional[httpx.AsyncClient] = None,
    timeout_s: float = DETECTION_TIMEOUT_S,
    poll_interval: float = POLL_INTERVAL_S,
) -> DetectAnomalyResponse:
    """Renvoie {data} ou {error}, jamais d'exception"""
    http = client or httpx.AsyncClient(timeout=timeout_s)
    try:
        if not image:
            return DetectAnomalyResponse(error="No image provided")
        if not fal_key:
            raise MissingAPIKeyError("fal", "FAL_KEY environment variable is not set")

        logger.info("🔎 Starting anomaly detection with fal.ai... (prompt: %s)", prompt)

        image_url = image
        if image.startswith("data:"):
            logger.info("Uploading image to fal.ai storage...")
            try:
                image_url = await upload_image(image, fal_key=fal_key, client=http)
            except (httpx.HTTPError, ValueError, KeyError) as e:
                logger.error("Failed to upload image: %s", e)
                return DetectAnomalyResponse(error="Failed to upload image to storage")

        try:
            raw = await asyncio.wait_for(
                subscribe(
                    DETECT_ENDPOINT,
                    {"image_url": image_url, "prompt": prompt},
                    fal_key=fal_key,
                    client=http,
                    poll_interval=poll_interval,
                ),
                timeout=timeout_s,
            )
        except asyncio.TimeoutError:
            raise AnomalyDetectionError(f"Detection timed out after {timeout_s:g} seconds") from None

        result = AnomalyDetectionResult.model_validate(raw)
        logger.info("Detection result: %d object(s), finish_reason=%s", len(result.objects), result.finish_reason)
        return DetectAnomalyResponse(data=result, summary=summarize_detections(result.objects))

    except Exception as e:
        logger.error("Anomaly detection error: %s", e)
        return DetectAnomalyResponse(error=str(e) or "Failed to detect anomalies")
    finally:
        if client is None:
            await http.aclose()


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def summarize_detections(objects: Sequence[DetectedObject]) -> str:
    """Texte à placer dans le champ du formulaire"""
    if not objects:
        return NO_ANOMALIES_TEXT

    lines = [f"Detected {len(objects)} anomalies:"]
    for i, obj in enumerate(objects, 1):
        lines.append(
            f"{i}. Location: ({_pct(obj.x_min)}, {_pct(obj.y_min)}) to ({_pct(obj.x_max)}, {_pct(obj.y_max)})"
        )
    return "\n".join(lines)


def to_pixel_boxes(objects: Sequence[DetectedObject], width: int, height: int) -> List[Dict[str, Any]]:
    """Coordonnées normalisées -> rectangles en pixels (pour le dessin sur canvas)"""
    boxes = []
    for i, obj in enumerate(objects, 1):
        x_min = obj.x_min * width
        y_min = obj.y_min * height
        boxes.append({
            "label": f"Anomaly {i}",
            "x": x_min,
            "y": y_min,
            "width": obj.x_max * width - x_min,
            "height": obj.y_max * height - y_min,
        })
    return boxes
