"""FastAPI frontend for Mission Quest.

Server-rendered pages drive a :class:`~missionquest.board.MissionBoard` per
request, and a small JSON API under ``/api`` exposes the same gateway
operations to :class:`~missionquest.client.HttpMissionGateway`. Run it with
``uvicorn missionquest.webapp:app``.
"""

from __future__ import annotations

from html import escape as html_escape
from typing import Any, Dict, Mapping, Optional, Tuple

from fastapi import Body, FastAPI, Form, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from ..board import MissionBoard
from ..exceptions import GatewayError, MissionNotFoundError, ValidationError
from ..gateway import MissionGateway
from ..models import (
    FAILURE_INVALID,
    FAILURE_NOT_FOUND,
    MAX_STARS,
    MIN_STARS,
    NOTICE_SECONDS,
    Mission,
    MutationResult,
    NoticeKind,
)
from ..ops import StructuredLogger
from ..parent_mode import PIN_LENGTH, ParentModeGate
from ..progress import progress_label, star_hint
from ..validation import parse_int, validate_goal, validate_mission, validate_value
from .config import (
    APP_TITLE,
    LOG_PATH,
    MILESTONE_POLICY,
    PARENT_PIN,
    RECONCILIATION_POLICY,
    SESSION_SECRET,
)
from .persistence import SqlMissionGateway, engine


# ---------------------------------------------------------------------------
# FastAPI application setup
# ---------------------------------------------------------------------------
app = FastAPI(title=APP_TITLE)
app.add_middleware(
    SessionMiddleware,
    secret_key=SESSION_SECRET,
    same_site="lax",
    max_age=None,
)

event_log = StructuredLogger(path=LOG_PATH)
_gateway: MissionGateway = SqlMissionGateway(engine, logger=event_log)


def use_gateway(gateway: MissionGateway) -> MissionGateway:
    """Swap the gateway every route talks to and return the previous one."""

    global _gateway
    previous = _gateway
    _gateway = gateway
    return previous


def new_board() -> MissionBoard:
    return MissionBoard(
        _gateway,
        milestone_policy=MILESTONE_POLICY,
        reconciliation=RECONCILIATION_POLICY,
        logger=event_log,
    )


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------
def parent_gate(request: Request) -> ParentModeGate:
    return ParentModeGate(request.session, PARENT_PIN)


def require_parent(request: Request) -> Optional[RedirectResponse]:
    if not parent_gate(request).unlocked:
        return RedirectResponse("/", status_code=302)
    return None


def set_notice(request: Request, message: str, kind: str = NoticeKind.SUCCESS.value) -> None:
    request.session["notice"] = message
    request.session["notice_kind"] = kind


def pop_notice(request: Request) -> Tuple[Optional[str], str]:
    message = request.session.pop("notice", None)
    kind = request.session.pop("notice_kind", NoticeKind.SUCCESS.value)
    return message, kind


def carry_board_notice(request: Request, board: MissionBoard) -> None:
    notice = board.notice
    if notice is not None and notice.text:
        set_notice(request, notice.text, notice.kind.value)


# ---------------------------------------------------------------------------
# HTML rendering
# ---------------------------------------------------------------------------
def base_styles() -> str:
    return """
<style>
body{font-family:Roboto,Arial,sans-serif;background:#030712;color:#f9fafb;margin:0;padding:16px;}
.wrap{max-width:880px;margin:0 auto;}
h1{text-align:center;font-size:34px;background:linear-gradient(90deg,#c084fc,#ec4899,#eab308);-webkit-background-clip:text;color:transparent;margin-bottom:4px;}
.tagline{text-align:center;color:#9ca3af;margin-top:0;}
.card{background:#111827;border:1px solid #1f2937;border-radius:12px;padding:16px;margin:12px 0;}
.card--done{border-right:8px solid #22c55e;}
.card--open{border-right:8px solid #a855f7;}
.row{display:flex;justify-content:space-between;align-items:center;gap:12px;flex-wrap:wrap;}
.muted{color:#9ca3af;font-size:14px;}
.bar{height:16px;background:#1f2937;border-radius:999px;overflow:hidden;}
.bar__fill{height:100%;background:linear-gradient(90deg,#a855f7,#ec4899);}
.bar__fill--milestone{background:linear-gradient(90deg,#eab308,#f59e0b);}
.celebrate{text-align:center;color:#fde047;font-weight:700;margin-top:8px;}
.stars{color:#fde047;letter-spacing:2px;}
.stars__off{color:#374151;}
button,.button{background:linear-gradient(90deg,#a855f7,#ec4899);color:#fff;border:none;border-radius:8px;padding:8px 14px;cursor:pointer;text-decoration:none;font-size:14px;}
button.ghost{background:transparent;border:1px solid #374151;color:#d1d5db;}
button.danger{background:#b91c1c;}
input,textarea,select{background:#1f2937;border:1px solid #374151;color:#fff;border-radius:8px;padding:8px;width:100%;box-sizing:border-box;}
label{display:block;font-size:13px;color:#d1d5db;margin:10px 0 4px;}
.field-error{color:#f87171;font-size:13px;margin-top:4px;}
.notice{padding:10px 12px;border-radius:8px;margin:12px 0;}
.notice--success{background:rgba(20,83,45,0.6);color:#86efac;}
.notice--error{background:rgba(127,29,29,0.6);color:#fca5a5;}
.pin{width:160px;text-align:center;font-size:22px;letter-spacing:8px;}
.shake{animation:shake 0.5s;}
@keyframes shake{0%,100%{transform:translateX(0);}25%{transform:translateX(-6px);}75%{transform:translateX(6px);}}
.inline{display:inline;}
</style>
"""


def autohide_js() -> str:
    return """
<script>
document.querySelectorAll('[data-autohide]').forEach(function(el){
  setTimeout(function(){ el.remove(); }, parseInt(el.dataset.autohide, 10));
});
</script>
"""


def frame(title: str, inner: str) -> str:
    return (
        "<html><head><meta charset='utf-8'><meta name='viewport' "
        f"content='width=device-width,initial-scale=1'><title>{html_escape(title)}</title>"
        f"{base_styles()}</head><body><div class='wrap'>{inner}</div>{autohide_js()}</body></html>"
    )


def render_page(title: str, inner: str, *, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(frame(title, inner), status_code=status_code)


def notice_html(message: Optional[str], kind: str) -> str:
    if not message:
        return ""
    autohide = ""
    if kind == NoticeKind.SUCCESS.value:
        autohide = f" data-autohide='{int(NOTICE_SECONDS * 1000)}'"
    return f"<div class='notice notice--{html_escape(kind)}'{autohide}>{html_escape(message)}</div>"


def star_rating_html(stars: int) -> str:
    lit = "★" * stars
    unlit = "★" * max(0, MAX_STARS - stars)
    return f"<span class='stars' aria-label='{stars} stars'>{lit}<span class='stars__off'>{unlit}</span></span>"


def field_error_html(errors: Mapping[str, str], name: str) -> str:
    message = errors.get(name)
    return f"<div class='field-error'>{html_escape(message)}</div>" if message else ""


def progress_html(title: str, value: int, max_value: int, percent: int, *, milestone: bool = False) -> str:
    fill_class = "bar__fill bar__fill--milestone" if milestone else "bar__fill"
    return (
        f"<div class='row'><span class='muted'>{html_escape(title)}</span>"
        f"<span class='muted'>{html_escape(progress_label(value, max_value))}</span></div>"
        f"<div class='bar'><div class='{fill_class}' style='width:{percent}%'></div></div>"
    )


def mission_card_html(mission: Mission, *, parent_mode: bool) -> str:
    state_class = "card--done" if mission.completed else "card--open"
    toggle_label = "✅ Done" if mission.completed else "⭕ Mark done"
    delete_form = ""
    if parent_mode:
        delete_form = (
            f"<form method='post' action='/missions/{mission.id}/delete' class='inline' "
            "onsubmit='return confirm(\"Delete this mission?\");'>"
            "<button type='submit' class='danger'>Delete</button></form>"
        )
    return (
        f"<div class='card {state_class}' data-mission-id='{mission.id}'>"
        f"<div class='row'><strong>{html_escape(mission.title)}</strong>"
        f"<div><form method='post' action='/missions/{mission.id}/toggle' class='inline'>"
        f"<button type='submit' class='ghost'>{toggle_label}</button></form> {delete_form}</div></div>"
        f"<p class='muted'>{html_escape(mission.description)}</p>"
        f"<div><span class='muted'>Reward:</span> {star_rating_html(mission.stars)}</div>"
        "</div>"
    )


def milestone_html(
    board: MissionBoard,
    *,
    parent_mode: bool,
    editing: bool = False,
    errors: Optional[Mapping[str, str]] = None,
    form: Optional[Mapping[str, str]] = None,
) -> str:
    settings = board.milestone
    parts = [
        progress_html(
            "Milestone Progress",
            settings.current_value,
            settings.total_goal,
            board.milestone_percent,
            milestone=True,
        )
    ]
    if board.milestone_achieved:
        parts.append("<div class='celebrate'>🏆 Milestone achieved! Congratulations! 🏆</div>")
    if parent_mode and not editing:
        parts.append("<p><a class='button' href='/?edit=milestone'>Edit milestone</a></p>")
    if parent_mode and editing:
        errors = errors or {}
        values = form or {}
        goal = values.get("goal", str(settings.total_goal))
        value = values.get("value", str(settings.current_value))
        parts.append(
            "<form method='post' action='/milestone' class='card'>"
            f"<label for='milestone-goal'>Total Goal</label>"
            f"<input id='milestone-goal' name='goal' type='number' min='1' value='{html_escape(goal)}'>"
            f"{field_error_html(errors, 'goal')}"
            f"<label for='milestone-value'>Current Value</label>"
            f"<input id='milestone-value' name='value' type='number' min='0' value='{html_escape(value)}'>"
            f"{field_error_html(errors, 'value')}"
            "<p class='row'><a class='button' href='/'>Cancel</a>"
            "<button type='submit'>Save Changes</button></p></form>"
        )
    return "<div class='card'>" + "".join(parts) + "</div>"


def render_home(
    request: Request,
    board: MissionBoard,
    *,
    editing_milestone: bool = False,
    milestone_errors: Optional[Mapping[str, str]] = None,
    milestone_form: Optional[Mapping[str, str]] = None,
    status_code: int = 200,
) -> HTMLResponse:
    parent_mode = parent_gate(request).unlocked
    message, kind = pop_notice(request)
    stats = board.stats
    header = (
        f"<h1>{html_escape(APP_TITLE)}</h1>"
        "<p class='tagline'>Complete missions to earn shiny stars!</p>"
    )
    if parent_mode:
        mode_controls = (
            "<form method='post' action='/parent/lock' class='inline'>"
            "<button type='submit' class='ghost'>🔓 Exit parent mode</button></form>"
        )
    else:
        mode_controls = "<a class='button' href='/parent/unlock'>🔒 Parent mode</a>"
    progress = progress_html("Mission Progress", stats.completed_points, stats.total_points, board.stats_percent)
    if board.all_missions_complete:
        progress += "<div class='celebrate'>🎉 All missions completed! You're amazing! 🎉</div>"
    toolbar = f"<div class='row'><h2>Your Missions</h2><div>{mode_controls}"
    if parent_mode:
        toolbar += " <a class='button' href='/missions/new'>➕ Add Mission</a>"
    toolbar += "</div></div>"
    if board.missions:
        cards = "".join(mission_card_html(mission, parent_mode=parent_mode) for mission in board.missions)
    else:
        cards = "<div class='card'><p class='muted'>No missions yet. Add your first mission!</p></div>"
    inner = (
        header
        + notice_html(message, kind)
        + f"<div class='card'>{progress}</div>"
        + milestone_html(
            board,
            parent_mode=parent_mode,
            editing=editing_milestone,
            errors=milestone_errors,
            form=milestone_form,
        )
        + toolbar
        + cards
    )
    return render_page(APP_TITLE, inner, status_code=status_code)


def render_add_mission(
    *,
    values: Optional[Mapping[str, str]] = None,
    errors: Optional[Mapping[str, str]] = None,
    message: Optional[str] = None,
    status_code: int = 200,
) -> HTMLResponse:
    values = values or {}
    errors = errors or {}
    selected = parse_int(values.get("stars")) or MIN_STARS
    star_options = "".join(
        f"<option value='{count}'{' selected' if count == selected else ''}>"
        f"{'★' * count} ({count}) {html_escape(star_hint(count))}</option>"
        for count in range(MIN_STARS, MAX_STARS + 1)
    )
    inner = (
        "<p><a href='/' class='muted'>← Back to Missions</a></p>"
        "<h2>✨ Create New Mission</h2>"
        + notice_html(message, NoticeKind.ERROR.value)
        + "<form method='post' action='/missions/new' class='card'>"
        "<label for='title'>Mission Title</label>"
        f"<input id='title' name='title' placeholder='Enter a fun mission title' value='{html_escape(values.get('title', ''))}'>"
        f"{field_error_html(errors, 'title')}"
        "<label for='description'>Mission Description</label>"
        "<textarea id='description' name='description' placeholder='Describe what needs to be done'>"
        f"{html_escape(values.get('description', ''))}</textarea>"
        f"{field_error_html(errors, 'description')}"
        f"<label for='stars'>Star Reward ({MIN_STARS}-{MAX_STARS} stars)</label>"
        f"<select id='stars' name='stars'>{star_options}</select>"
        f"{field_error_html(errors, 'stars')}"
        "<p class='row'><a class='button' href='/'>Cancel</a>"
        "<button type='submit'>Create Mission</button></p>"
        "</form>"
    )
    return render_page("Create New Mission", inner, status_code=status_code)


def render_pin_entry(*, error: Optional[str] = None, status_code: int = 200) -> HTMLResponse:
    shake = " shake" if error else ""
    error_html = f"<div class='field-error'>{html_escape(error)}</div>" if error else ""
    inner = (
        "<div class='card' style='max-width:360px;margin:40px auto;text-align:center;'>"
        "<h3>🔒 Enter Parent PIN</h3>"
        "<form method='post' action='/parent/unlock'>"
        f"<input class='pin{shake}' name='pin' type='password' inputmode='numeric' maxlength='{PIN_LENGTH}' "
        "placeholder='• • • •' autofocus>"
        f"{error_html}"
        "<p><button type='submit'>Unlock</button></p></form>"
        "<p class='muted'><a href='/'>← Back</a></p></div>"
    )
    return render_page("Parent PIN", inner, status_code=status_code)


# ---------------------------------------------------------------------------
# Page routes
# ---------------------------------------------------------------------------
@app.get("/", response_class=HTMLResponse)
async def home(request: Request, edit: str = Query("")):
    board = new_board()
    await board.load()
    return render_home(request, board, editing_milestone=edit == "milestone" and parent_gate(request).unlocked)


@app.post("/missions/{mission_id}/toggle")
async def toggle_mission(request: Request, mission_id: int):
    board = new_board()
    await board.load()
    try:
        await board.toggle(mission_id)
    except MissionNotFoundError:
        set_notice(request, "That mission no longer exists.", NoticeKind.ERROR.value)
        return RedirectResponse("/", status_code=302)
    carry_board_notice(request, board)
    return RedirectResponse("/", status_code=302)


@app.get("/missions/new", response_class=HTMLResponse)
def add_mission_page(request: Request):
    if (redirect := require_parent(request)) is not None:
        return redirect
    return render_add_mission()


@app.post("/missions/new")
async def add_mission(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    stars: str = Form(""),
):
    if (redirect := require_parent(request)) is not None:
        return redirect
    values = {"title": title, "description": description, "stars": stars}
    board = new_board()
    try:
        result = await board.add_mission(title, description, stars)
    except ValidationError as exc:
        return render_add_mission(values=values, errors=exc.errors, status_code=400)
    if not result.success:
        return render_add_mission(values=values, message=result.message, status_code=500)
    set_notice(request, result.message or "Mission added successfully!")
    return RedirectResponse("/", status_code=302)


@app.post("/missions/{mission_id}/delete")
async def delete_mission(request: Request, mission_id: int):
    if (redirect := require_parent(request)) is not None:
        return redirect
    board = new_board()
    await board.load()
    try:
        await board.delete_mission(mission_id)
    except MissionNotFoundError:
        set_notice(request, "That mission no longer exists.", NoticeKind.ERROR.value)
        return RedirectResponse("/", status_code=302)
    carry_board_notice(request, board)
    return RedirectResponse("/", status_code=302)


@app.post("/milestone")
async def update_milestone(request: Request, goal: str = Form(""), value: str = Form("")):
    if (redirect := require_parent(request)) is not None:
        return redirect
    board = new_board()
    await board.load()
    try:
        result = await board.update_milestone(goal, value)
    except ValidationError as exc:
        return render_home(
            request,
            board,
            editing_milestone=True,
            milestone_errors=exc.errors,
            milestone_form={"goal": goal, "value": value},
            status_code=400,
        )
    carry_board_notice(request, board)
    if not result.success:
        return RedirectResponse("/?edit=milestone", status_code=302)
    return RedirectResponse("/", status_code=302)


@app.get("/parent/unlock", response_class=HTMLResponse)
def parent_unlock_page(request: Request):
    if parent_gate(request).unlocked:
        return RedirectResponse("/", status_code=302)
    return render_pin_entry()


@app.post("/parent/unlock")
def parent_unlock(request: Request, pin: str = Form("")):
    attempt = parent_gate(request).unlock(pin)
    if not attempt.unlocked:
        event_log.log("parent_unlock_rejected")
        return render_pin_entry(error=attempt.error, status_code=401)
    return RedirectResponse("/", status_code=302)


@app.post("/parent/lock")
def parent_lock(request: Request):
    parent_gate(request).lock()
    return RedirectResponse("/", status_code=302)


@app.get("/healthz")
async def healthz():
    try:
        await _gateway.milestone()
    except GatewayError:
        return JSONResponse({"database": "down"}, status_code=503)
    return {"database": "ok"}


# ---------------------------------------------------------------------------
# JSON API
# ---------------------------------------------------------------------------
def result_response(result: MutationResult) -> JSONResponse:
    if result.success:
        status_code = 200
    elif result.code == FAILURE_NOT_FOUND:
        status_code = 404
    elif result.code == FAILURE_INVALID:
        status_code = 400
    else:
        status_code = 500
    return JSONResponse(result.to_dict(), status_code=status_code)


def invalid_response(exc: ValidationError) -> JSONResponse:
    return JSONResponse({"success": False, "message": str(exc), "errors": exc.errors}, status_code=400)


def unavailable_response(exc: GatewayError) -> JSONResponse:
    return JSONResponse({"detail": str(exc)}, status_code=503)


@app.get("/api/missions")
async def api_list_missions():
    try:
        missions = await _gateway.list_missions()
    except GatewayError as exc:
        return unavailable_response(exc)
    return [mission.to_dict() for mission in missions]


@app.post("/api/missions")
async def api_add_mission(payload: Dict[str, Any] = Body(...)):
    try:
        draft = validate_mission(payload.get("title"), payload.get("description"), payload.get("stars"))
    except ValidationError as exc:
        return invalid_response(exc)
    return result_response(await _gateway.add_mission(draft))


@app.post("/api/missions/{mission_id}/toggle")
async def api_toggle_mission(mission_id: int):
    return result_response(await _gateway.toggle_mission(mission_id))


@app.delete("/api/missions/{mission_id}")
async def api_delete_mission(mission_id: int):
    return result_response(await _gateway.delete_mission(mission_id))


@app.get("/api/stats")
async def api_stats():
    try:
        stats = await _gateway.mission_stats()
    except GatewayError as exc:
        return unavailable_response(exc)
    return stats.to_dict()


@app.get("/api/milestone")
async def api_milestone():
    try:
        settings = await _gateway.milestone()
    except GatewayError as exc:
        return unavailable_response(exc)
    return settings.to_dict()


@app.put("/api/milestone/goal")
async def api_update_milestone_goal(payload: Dict[str, Any] = Body(...)):
    try:
        goal = validate_goal(payload.get("goal"))
    except ValidationError as exc:
        return invalid_response(exc)
    return result_response(await _gateway.update_milestone_goal(goal))


@app.put("/api/milestone/value")
async def api_update_milestone_value(payload: Dict[str, Any] = Body(...)):
    try:
        value = validate_value(payload.get("value"))
    except ValidationError as exc:
        return invalid_response(exc)
    return result_response(await _gateway.update_milestone_value(value))


@app.post("/api/milestone/increment")
async def api_increment_milestone(payload: Dict[str, Any] = Body(...)):
    delta = parse_int(payload.get("delta"))
    if delta is None:
        return invalid_response(ValidationError({"delta": "Delta must be a whole number"}))
    return result_response(await _gateway.increment_milestone(delta))


@app.get("/api/events")
def api_events(limit: int = Query(50)):
    return list(event_log.tail(limit))


__all__ = [
    "app",
    "event_log",
    "use_gateway",
    "new_board",
    "parent_gate",
    "require_parent",
    "set_notice",
    "pop_notice",
    "render_home",
    "home",
    "toggle_mission",
    "add_mission_page",
    "add_mission",
    "delete_mission",
    "update_milestone",
    "parent_unlock_page",
    "parent_unlock",
    "parent_lock",
    "healthz",
]
