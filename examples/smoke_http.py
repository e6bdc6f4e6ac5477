from __future__ import annotations

import json
import os
import time
import urllib.request

import httpx

# 1x1 opaque red PNG.
PIXEL_PNG = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010802000000907753"
    "de0000000c4944415408d763f8cfc000000301010018dd8db00000000049454e44ae426082"
)


def _wait_http_ok(url: str, timeout_seconds: float = 40.0) -> bytes:
    deadline = time.time() + timeout_seconds
    last_error: Exception | None = None
    while time.time() < deadline:
        try:
            with urllib.request.urlopen(url, timeout=3.0) as response:  # noqa: S310
                if response.status == 200:
                    return response.read()
        except Exception as exc:  # noqa: BLE001
            last_error = exc
        time.sleep(0.5)
    raise RuntimeError(f"timed out waiting for HTTP 200 at {url}: {last_error}")


def _assert_http(api_base: str) -> None:
    health_raw = _wait_http_ok(f"{api_base}/healthz")
    ready_raw = _wait_http_ok(f"{api_base}/readyz")
    health_payload = json.loads(health_raw.decode("utf-8"))
    ready_payload = json.loads(ready_raw.decode("utf-8"))
    assert health_payload.get("status") == "ok", health_payload
    assert ready_payload.get("status") == "ready", ready_payload


def _assert_conversion(api_base: str) -> None:
    files = [
        ("frames", (f"frame{index:03d}.png", PIXEL_PNG, "image/png")) for index in range(3)
    ]
    response = httpx.post(
        f"{api_base}/v1/convert/frames",
        files=files,
        data={"fps": "5", "format": "gif"},
        timeout=60.0,
    )
    assert response.status_code == 200, response.text
    assert response.content[:3] == b"GIF", response.content[:16]
    assert response.headers["x-output-size"] == str(len(response.content))

    missing = httpx.post(f"{api_base}/v1/convert/frames", data={"fps": "5"}, timeout=10.0)
    assert missing.status_code == 400, missing.text


def main() -> None:
    api_base = os.getenv("ANIM_CONVERTER_API_BASE", "http://127.0.0.1:3000")

    _assert_http(api_base)
    _assert_conversion(api_base)

    print("animation converter HTTP smoke checks passed")


if __name__ == "__main__":
    main()
