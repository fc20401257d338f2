"""Fake HubSpot/Gemini upstreams built on httpx.MockTransport."""
import json
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx

HARDWARE_PIPELINE = "829155852"
TRIAL_PIPELINE = "default"

Route = Union[Tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


class FakeUpstream:
    """Routes requests by (method, path) to canned JSON responses."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, status_code: int = 200, body: Any = None):
        self.routes[(method.upper(), path)] = (status_code, body if body is not None else {})

    def add_handler(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]):
        self.routes[(method.upper(), path)] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": f"No route for {request.method} {request.url.path}"})
        if callable(route):
            return route(request)
        status_code, body = route
        return httpx.Response(status_code, json=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    @staticmethod
    def json_body(request: httpx.Request) -> Any:
        return json.loads(request.content)


def deal(deal_id: str, pipeline: str, stage: str = "", amount: str = None, createdate: str = None) -> dict:
    properties = {"dealname": f"Deal {deal_id}", "pipeline": pipeline, "dealstage": stage}
    if amount is not None:
        properties["amount"] = amount
    if createdate is not None:
        properties["createdate"] = createdate
    return {"id": deal_id, "properties": properties}


def associations(*ids: str) -> dict:
    return {"results": [{"id": record_id, "type": "association"} for record_id in ids]}


def batch(*records: dict) -> dict:
    return {"status": "COMPLETE", "results": list(records)}


def line_item(item_id: str, quantity: Any) -> dict:
    return {"id": item_id, "properties": {"name": "Breezy Thermostat", "quantity": quantity}}


def gemini_path(model: str) -> str:
    return f"/v1beta/models/{model}:generateContent"


def gemini_reply(fake_gemini: FakeUpstream, model: str, text: str):
    fake_gemini.add(
        "POST",
        gemini_path(model),
        body={"candidates": [{"content": {"parts": [{"text": text}]}}]},
    )
