from __future__ import annotations

import json

from mangum import Mangum

from backend.fastapi_app.main import app


def _safe_get(d, *keys, default=None):
    cur = d
    for k in keys:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def _base_path(stage):
    """/dev や /prod のステージ部分。$default ステージのときは剥がさない"""
    if stage and stage != "$default":
        return f"/{stage}"
    return None


def handler(event, context):
    stage = _safe_get(event, "requestContext", "stage", default=None)
    body = event.get("body") or ""

    print(
        json.dumps(
            {
                "diag": "incoming_request",
                "service": "usv-convert",
                "stage": stage,
                "method": _safe_get(event, "requestContext", "http", "method", default=None),
                "rawPath": event.get("rawPath"),
                "requestContext.http.path": _safe_get(
                    event, "requestContext", "http", "path", default=None
                ),
                "bodyLength": len(body),
                "isBase64Encoded": event.get("isBase64Encoded", False),
            },
            ensure_ascii=False,
        )
    )

    asgi = Mangum(app, api_gateway_base_path=_base_path(stage))
    return asgi(event, context)
