import asyncio
import os
import random
from typing import Dict, Optional

from fastapi import FastAPI
import socketio

from match import Match, Settings
from territory_game import Coord

# FastAPI and Socket.IO setup
app = FastAPI()
sio = socketio.AsyncServer(cors_allowed_origins="*", async_mode='asgi')
socket_app = socketio.ASGIApp(sio, app)

# Game storage
games: Dict[str, Match] = {}


@app.get("/health")
async def health():
    return {'status': 'ok', 'games': len(games)}


async def emit_state(sid: str, match: Match):
    await sio.emit('gameState', match.snapshot(), room=sid)


async def run_bots(sid: str, match: Match, rng: Optional[random.Random] = None):
    """Let bots move until a human is to play or the game ends"""
    loop = asyncio.get_running_loop()
    while match.next_player_is_bot():
        state = match.state
        player = state.next_player
        # Search is CPU-bound; keep the event loop free while the bot thinks
        action = await loop.run_in_executor(None, match.choose_bot_action, rng)
        if games.get(sid) is not match or match.state is not state:
            return  # Client left or undid while the bot was thinking
        action = match.apply_bot_action(action)
        print(f"{match.player_name(player)} played {action} for client {sid}")
        await emit_state(sid, match)


@sio.event
async def connect(sid, environ):
    print(f'New client connected: {sid}')


@sio.event
async def disconnect(sid):
    print(f'Client disconnected: {sid}')
    if sid in games:
        del games[sid]


@sio.event
async def newGame(sid, settings=None):
    settings = Settings.from_dict(settings or {})
    if sid in games:
        match = games[sid]
        match.new_game(settings)
    else:
        match = Match(settings)
        games[sid] = match
    print(f"New {match.settings.board_size}x{match.settings.board_size} game with "
          f"{match.settings.num_humans} humans and {match.settings.num_bots} bots for client {sid}")
    await emit_state(sid, match)
    await run_bots(sid, match)


@sio.event
async def getState(sid):
    if sid not in games:
        await sio.emit('error', 'No game found', room=sid)
        return
    await emit_state(sid, games[sid])


@sio.event
async def makeMove(sid, data):
    if sid not in games:
        await sio.emit('error', 'No game found', room=sid)
        return

    match = games[sid]
    try:
        coord = Coord(int(data['x']), int(data['y']))
    except (KeyError, TypeError, ValueError):
        await sio.emit('error', f'Malformed move: {data!r}', room=sid)
        return

    if match.play_human(coord):
        await emit_state(sid, match)
        await run_bots(sid, match)
    else:
        await sio.emit('invalidMove', {'x': coord.x, 'y': coord.y}, room=sid)


@sio.event
async def undo(sid):
    if sid not in games:
        return

    match = games[sid]
    match.undo()
    await emit_state(sid, match)
    await run_bots(sid, match)


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 3000))
    uvicorn.run(socket_app, host="127.0.0.1", port=port)
