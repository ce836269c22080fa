"""FastAPI server exposing the assistant over a WebSocket."""

import json
import uuid

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from agent.assistant import Assistant
from agent.runtime import Runtime, create_runtime
from tools import create_default_registry

app = FastAPI(title="Approval-Gated Assistant")

_runtime = None


def get_runtime() -> Runtime:
    """Shared runtime, built on first use."""
    global _runtime
    if _runtime is None:
        _runtime = create_runtime()
    return _runtime


@app.get("/api/tools")
async def list_tools():
    """List all tools the assistant can run."""
    return create_default_registry().get_tools_metadata()


@app.websocket("/ws/chat")
async def websocket_chat(websocket: WebSocket):
    """One assistant session per connection."""
    await websocket.accept()

    assistant = Assistant(get_runtime(), session_id=str(uuid.uuid4()))

    try:
        while True:
            # Receive user message
            data = await websocket.receive_text()
            message = json.loads(data)
            user_input = message.get("content", "")

            if not user_input.strip():
                continue

            # Send "thinking" indicator
            await websocket.send_text(json.dumps({
                "type": "status",
                "content": "thinking",
            }))

            try:
                reply = await run_in_threadpool(assistant.handle_message, user_input)
            except Exception as e:
                await websocket.send_text(json.dumps({
                    "type": "error",
                    "content": f"Agent error: {str(e)}",
                }))
                continue

            # Staged actions and patches wait for the user's answer
            msg_type = "response"
            if assistant.awaiting_approval or assistant.awaiting_patch:
                msg_type = "confirmation"

            await websocket.send_text(json.dumps({
                "type": msg_type,
                "content": reply,
            }))

    except WebSocketDisconnect:
        pass


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
