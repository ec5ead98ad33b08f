from __future__ import annotations

"""Mock Optimus fleet-telemetry API

- Keeps a handful of trucks in memory, each driving a loop of waypoints.
- GET /trucks returns a snapshot in any of the three shapes the real API
  has been seen to use (?shape=array|wrapped|single).
- Requires "Authorization: Bearer <MOCK_OPTIMUS_TOKEN>" when the token is set.
- POST /scenario switches on failure modes for local testing of the
  ingestion pipeline.

Run with: uvicorn sim.mock_fleet.server:app --port 8090
"""

import datetime as dt
import math
import os
import time
from typing import Any, Dict, List, Literal

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

app = FastAPI(title="Mock Optimus Fleet API", version="0.1.0")

MOCK_OPTIMUS_TOKEN = os.getenv("MOCK_OPTIMUS_TOKEN", "").strip()


def _require_bearer(request: Request) -> None:
    """Require the bearer token if MOCK_OPTIMUS_TOKEN is configured."""
    if not MOCK_OPTIMUS_TOKEN:
        return
    got = (request.headers.get("Authorization") or "").strip()
    if got != f"Bearer {MOCK_OPTIMUS_TOKEN}":
        raise HTTPException(status_code=401, detail="Invalid or missing bearer token")


class ScenarioRequest(BaseModel):
    scenario: str = Field(..., description="clear|offline|bad_records|alias_mix")


class Truck:
    """A truck that loops over its waypoints at a constant speed (km/h)."""

    def __init__(self, tracker_id: str, description: str, waypoints: List[Dict[str, float]], speed_kmh: float):
        self.tracker_id = tracker_id
        self.description = description
        self.waypoints = waypoints
        self.speed_kmh = speed_kmh
        self.pos = dict(waypoints[0])
        self.wp_idx = 1
        self.last_step = time.time()

    def step(self) -> None:
        now = time.time()
        elapsed_h = (now - self.last_step) / 3600.0
        self.last_step = now
        remaining_km = self.speed_kmh * elapsed_h
        while remaining_km > 0:
            tgt = self.waypoints[self.wp_idx]
            d_km = _dist_km(self.pos, tgt)
            if d_km <= remaining_km:
                self.pos = dict(tgt)
                remaining_km -= d_km
                self.wp_idx = (self.wp_idx + 1) % len(self.waypoints)
                if d_km == 0:
                    break
            else:
                frac = remaining_km / d_km
                self.pos["lat"] += (tgt["lat"] - self.pos["lat"]) * frac
                self.pos["lng"] += (tgt["lng"] - self.pos["lng"]) * frac
                remaining_km = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.tracker_id,
            "latitude": round(self.pos["lat"], 6),
            "longitude": round(self.pos["lng"], 6),
            "speed": self.speed_kmh,
            "status": "moving" if self.speed_kmh > 0 else "parked",
            "utcDate": dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z"),
            "description": self.description,
        }


def _dist_km(a: Dict[str, float], b: Dict[str, float]) -> float:
    # Equirectangular approximation, fine for a few km
    x = math.radians(b["lng"] - a["lng"]) * math.cos(math.radians((a["lat"] + b["lat"]) / 2))
    y = math.radians(b["lat"] - a["lat"])
    return 6371.0 * math.sqrt(x * x + y * y)


trucks: List[Truck] = [
    Truck("TRK-001", "Volvo FH16 - Depot North", [
        {"lat": 52.5200, "lng": 13.4050}, {"lat": 52.5300, "lng": 13.4200},
        {"lat": 52.5250, "lng": 13.4400}, {"lat": 52.5150, "lng": 13.4250},
    ], speed_kmh=45.0),
    Truck("TRK-002", "Scania R500 - Port Shuttle", [
        {"lat": 53.5400, "lng": 9.9800}, {"lat": 53.5450, "lng": 10.0100},
        {"lat": 53.5350, "lng": 10.0200},
    ], speed_kmh=30.0),
    Truck("TRK-003", "MAN TGX - Yard", [
        {"lat": 48.1370, "lng": 11.5750}, {"lat": 48.1370, "lng": 11.5750},
    ], speed_kmh=0.0),
]

scenario: Dict[str, str] = {"name": "clear"}


def _snapshot() -> List[Dict[str, Any]]:
    for t in trucks:
        t.step()
    rows = [t.to_dict() for t in trucks]
    name = scenario["name"]
    if name == "bad_records":
        rows.append({"latitude": 52.5, "longitude": 13.4, "speed": 10})  # no identifier
        rows.append({"id": "TRK-GHOST", "speed": 0})  # no coordinates
    elif name == "alias_mix":
        # Older firmware reports deviceId / state / lastUpdate
        for row in rows:
            row["deviceId"] = row.pop("id")
            row["state"] = row.pop("status")
            row["lastUpdate"] = row.pop("utcDate")
    return rows


@app.get("/trucks")
def list_trucks(
    request: Request,
    shape: Literal["array", "wrapped", "single"] = Query("array"),
):
    _require_bearer(request)
    if scenario["name"] == "offline":
        return JSONResponse(status_code=503, content={"error": "Upstream maintenance"})
    rows = _snapshot()
    if shape == "wrapped":
        return {"data": rows, "count": len(rows)}
    if shape == "single":
        return rows[0]
    return rows


@app.post("/scenario")
def inject_scenario(request: Request, body: ScenarioRequest):
    _require_bearer(request)
    if body.scenario not in ("clear", "offline", "bad_records", "alias_mix"):
        raise HTTPException(status_code=400, detail=f"Unknown scenario: {body.scenario}")
    scenario["name"] = body.scenario
    return {"ok": True, "scenario": body.scenario}
