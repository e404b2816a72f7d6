"""MCP tool server for discflip.

Expose game operations so an external MCP client can play Black (or both
sides) against the built-in automated opponent over the HTTP API.
"""
from __future__ import annotations

import os
from typing import Any, Dict, Optional

import httpx
from mcp.server.fastmcp import FastMCP

API_BASE = os.getenv("DISCFLIP_API_URL", "http://127.0.0.1:8000").rstrip("/")
VALID_POLICIES = {"basic", "greedy-corner"}

mcp = FastMCP("discflip")


def _request(
    method: str,
    path: str,
    json: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    with httpx.Client(timeout=20.0) as client:
        response = client.request(method, f"{API_BASE}{path}", json=json, params=params)
    if response.is_error:
        detail = response.text
        try:
            payload = response.json()
            detail = payload.get("detail", detail)
        except ValueError:
            pass
        raise ValueError(f"{method} {path} failed ({response.status_code}): {detail}")
    return response.json()


def _check_policy(policy: str) -> str:
    policy = policy.lower().strip()
    if policy not in VALID_POLICIES:
        raise ValueError(f"Unsupported policy '{policy}'. Valid policies: {sorted(VALID_POLICIES)}")
    return policy


@mcp.tool(description="Check whether the discflip HTTP API is running.")
def health() -> Dict[str, Any]:
    return _request("GET", "/health")


@mcp.tool(
    description=(
        "Create a game. Set automated=true to have the built-in opponent play "
        "White, with policy 'basic' (random) or 'greedy-corner'; the "
        "server default applies when policy is omitted."
    )
)
def create_game(
    automated: bool = False,
    policy: Optional[str] = None,
    seed: Optional[int] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"automated": automated}
    if policy is not None:
        payload["policy"] = _check_policy(policy)
    if seed is not None:
        payload["seed"] = seed
    return _request("POST", "/game", json=payload)


@mcp.tool(description="Fetch the current state of a game by id.")
def get_game(game_id: str) -> Dict[str, Any]:
    return _request("GET", f"/game/{game_id}")


@mcp.tool(description="List legal moves, optionally for a given mover ('black' or 'white').")
def legal_moves(game_id: str, mover: Optional[str] = None) -> Dict[str, Any]:
    params = {"mover": mover.lower()} if mover else None
    return _request("GET", f"/game/{game_id}/legal", params=params)


@mcp.tool(description="Place a disc for the side to move, e.g. coord='D3'.")
def play_move(game_id: str, coord: str) -> Dict[str, Any]:
    return _request("POST", f"/game/{game_id}/move", json={"coord": coord.upper()})


@mcp.tool(description="Start a fresh game in the same session; the win tally is kept.")
def restart_game(game_id: str) -> Dict[str, Any]:
    return _request("POST", f"/game/{game_id}/restart")


@mcp.tool(description="Toggle the automated opponent or switch its policy.")
def configure_game(
    game_id: str,
    automated: Optional[bool] = None,
    policy: Optional[str] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    if automated is not None:
        payload["automated"] = automated
    if policy is not None:
        payload["policy"] = _check_policy(policy)
    return _request("PUT", f"/game/{game_id}/config", json=payload)


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
