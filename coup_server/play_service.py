"""REST service hosting Coup matches for remote seats."""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from coup.game import Match, MatchFailed
from coup.manager import MatchManager, UnknownMatch
from coup.mechanics import legal_commands
from coup.rules_schema import RuleSet
from coup.state import MatchFull

logger = logging.getLogger(__name__)

PLAYER_NAME_PATTERN = r"^[a-zA-Z0-9_ !@#$*]+$"
# Seats of torn-down matches kept around so clients can read the final state.
RETIRED_HANDLE_LIMIT = 256


class JoinRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=30, pattern=PLAYER_NAME_PATTERN)


class CommandRequest(BaseModel):
    token: str
    command: Dict[str, Any]


class LeaveRequest(BaseModel):
    token: str


class SeatHandle:
    """Transport-side identity of a seat; buffers what the match emits to it."""

    def __init__(self, match_id: str) -> None:
        self.token = uuid.uuid4().hex
        self.match_id = match_id
        self.outbox: List[Dict[str, Any]] = []

    def push(self, channel: str, payload: Any) -> None:
        self.outbox.append({"channel": channel, "payload": jsonable_encoder(payload)})

    def drain(self) -> List[Dict[str, Any]]:
        messages, self.outbox = self.outbox, []
        return messages


def create_app(rules: Optional[RuleSet] = None, seed: Optional[int] = None) -> FastAPI:
    handles: Dict[str, SeatHandle] = {}
    retired: "OrderedDict[str, SeatHandle]" = OrderedDict()

    def emit(handle: SeatHandle, channel: str, payload: Any) -> None:
        handle.push(channel, payload)

    manager = MatchManager(emit=emit, rules=rules, seed=seed)

    app = FastAPI(title="Coup Play Service")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.manager = manager
    app.state.handles = handles
    app.state.retired = retired

    def ensure_match(match_id: str) -> Match:
        try:
            return manager.get(match_id)
        except UnknownMatch:
            raise HTTPException(status_code=404, detail="Match not found")

    def ensure_handle(match_id: str, token: str) -> SeatHandle:
        handle = handles.get(token)
        if handle is None or handle.match_id != match_id:
            raise HTTPException(status_code=404, detail="Seat not found")
        return handle

    def retire(match_ids: Iterable[str]) -> None:
        """Move the seats of closed matches out of the live map, keeping a bounded tail."""
        closed = set(match_ids)
        if not closed:
            return
        for token in [token for token, handle in handles.items() if handle.match_id in closed]:
            retired[token] = handles.pop(token)
        while len(retired) > RETIRED_HANDLE_LIMIT:
            retired.popitem(last=False)

    def seat_response(match: Match, handle: SeatHandle) -> Dict[str, object]:
        return {
            "match_id": match.match_id,
            "token": handle.token,
            "seat": match.seat_of(handle),
            "events": handle.drain(),
        }

    @app.post("/matches")
    def create_match() -> Dict[str, object]:
        match = manager.create_match()
        return {"match_id": match.match_id}

    @app.post("/matches/join")
    def join_public(request: JoinRequest) -> Dict[str, object]:
        # The handle is created before the match is known; rebind once seated.
        handle = SeatHandle(match_id="")
        match = manager.join_public(handle, request.name)
        handle.match_id = match.match_id
        handles[handle.token] = handle
        return seat_response(match, handle)

    @app.post("/matches/{match_id}/join")
    def join_match(match_id: str, request: JoinRequest) -> Dict[str, object]:
        match = ensure_match(match_id)
        handle = SeatHandle(match_id=match_id)
        try:
            match.seat_joined(handle, request.name)
        except MatchFull:
            raise HTTPException(status_code=409, detail=f"Cannot join match {match_id}: it is full.")
        handles[handle.token] = handle
        return seat_response(match, handle)

    @app.post("/matches/{match_id}/command", status_code=202)
    def submit_command(match_id: str, request: CommandRequest) -> Dict[str, object]:
        match = ensure_match(match_id)
        handle = ensure_handle(match_id, request.token)
        try:
            match.submit_command(handle, request.command)
        except MatchFailed:
            manager.close(match_id)
            retire([match_id])
            raise HTTPException(status_code=410, detail="Match aborted")
        retire(manager.reap())
        # Acceptance is never reported back; the next state snapshot tells the story.
        return {"status": "received"}

    @app.post("/matches/{match_id}/leave")
    def leave_match(match_id: str, request: LeaveRequest) -> Dict[str, object]:
        match = ensure_match(match_id)
        handle = ensure_handle(match_id, request.token)
        try:
            match.seat_left(handle)
        except MatchFailed:
            manager.close(match_id)
            retire([match_id])
        handles.pop(handle.token, None)
        retired.pop(handle.token, None)
        retire(manager.reap())
        return {"status": "left"}

    @app.get("/matches/{match_id}/events")
    def poll_events(match_id: str, token: str) -> Dict[str, object]:
        final = retired.get(token)
        if final is not None and final.match_id == match_id:
            # Last read for a closed match; the seat is forgotten afterwards.
            del retired[token]
            return {"events": final.drain()}
        handle = ensure_handle(match_id, token)
        return {"events": handle.drain()}

    @app.get("/matches/{match_id}/legal")
    def list_legal(match_id: str, token: str) -> Dict[str, object]:
        match = ensure_match(match_id)
        handle = ensure_handle(match_id, token)
        seat = match.seat_of(handle)
        if seat is None:
            return {"commands": []}
        return {"commands": legal_commands(match.state, seat)}

    return app


app = create_app()
