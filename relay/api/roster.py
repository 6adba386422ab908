from fastapi import APIRouter, Request

router = APIRouter()


def _controller(request: Request):
    return request.app.state.controller


@router.get("/roster")
async def get_roster(request: Request):
    """Currently joined users, in join order."""
    users = _controller(request).roster()
    return {"success": True, "data": [user.to_wire() for user in users]}


@router.get("/history")
async def get_history(request: Request):
    """Chat messages replayed to new connections."""
    history = _controller(request).history
    if history is None:
        return {"success": True, "data": []}
    return {"success": True, "data": [message.to_wire() for message in history.all()]}
