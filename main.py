from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from teamtravel.config import settings
from teamtravel.cache.flight_cache import build_flight_source
from teamtravel.calendar.scanner import CalendarScanner
from teamtravel.calendar.store import CalendarStore
from teamtravel.conversation.assistant import TravelAssistant
from teamtravel.conversation.group_flow.manager import GroupFlowManager
from teamtravel.conversation.group_flow.store import GroupFlowStore
from teamtravel.formatters.messages import format_scan_summary
from teamtravel.group.aggregator import MultiOriginSearchAggregator
from teamtravel.group.planner import GroupTravelCoordinator
from teamtravel.infrastructure.resilience import CircuitState, HealthChecker
from teamtravel.obs.context import user_id_var
from teamtravel.obs.logger import log_event
from teamtravel.obs.metrics import get_metrics_snapshot
from teamtravel.obs.middleware import ObservabilityMiddleware
from teamtravel.parse.intents import IntentClassifier
from teamtravel.rank.selector import rank_flights
from teamtravel.types import (
    FlightOffer,
    MemberAssignment,
    RankedOffer,
    TravelNeed,
    UserPreferences,
)
from teamtravel.user.preferences import PreferenceLearner, PreferenceStore
from teamtravel.user.directory import UserDirectory

load_dotenv()


class ChatRequest(BaseModel):
    user_id: str
    message: str


class RankRequest(BaseModel):
    offers: List[FlightOffer]
    user_id: Optional[str] = None
    preferences: Optional[UserPreferences] = None


class PlanRequest(BaseModel):
    org_id: str
    needs: List[TravelNeed] = []
    group_key: Optional[str] = None
    assignments: Optional[List[MemberAssignment]] = None
    title: Optional[str] = None


class ChoiceRequest(BaseModel):
    chosen: FlightOffer
    alternatives: List[FlightOffer] = Field(default_factory=list)


def init_services(state) -> None:
    """Wire the stores, sources and coordinators onto app.state."""
    state.directory = UserDirectory()
    state.calendar_store = CalendarStore()
    state.preferences = PreferenceStore()
    state.learner = PreferenceLearner(state.preferences)
    state.flight_source = build_flight_source()
    state.scanner = CalendarScanner(state.calendar_store, state.directory)
    state.aggregator = MultiOriginSearchAggregator(state.flight_source)
    state.coordinator = GroupTravelCoordinator(
        state.directory, state.calendar_store, state.preferences, state.aggregator
    )
    state.classifier = IntentClassifier()
    state.group_flow = GroupFlowManager(
        store=GroupFlowStore(),
        scanner=state.scanner,
        calendar_store=state.calendar_store,
        directory=state.directory,
        coordinator=state.coordinator,
        preferences=state.preferences,
        classifier=state.classifier,
    )
    state.assistant = TravelAssistant(
        directory=state.directory,
        calendar_store=state.calendar_store,
        scanner=state.scanner,
        preferences=state.preferences,
        flight_source=state.flight_source,
        group_flow=state.group_flow,
        classifier=state.classifier,
    )
    state.services_ready = True


def services(request: Request):
    state = request.app.state
    if not getattr(state, "services_ready", False):
        init_services(state)
    return state


@asynccontextmanager
async def lifespan(app: FastAPI):
    print(f"[INFO] Starting team travel service ({settings.APP_ENV})")
    init_services(app.state)
    print(f"[INFO] Flight source: {app.state.flight_source.name}")
    yield
    print("[INFO] Shutting down team travel service")


app = FastAPI(
    title="Team Travel Assistant",
    version="1.0.0",
    lifespan=lifespan
)


@app.get("/")
async def root():
    return {
        "service": "Team Travel Assistant",
        "version": "1.0.0",
        "status": "running",
        "features": [
            "Calendar travel detection",
            "Preference-weighted flight ranking",
            "Group trip clustering",
            "Concurrent multi-origin search",
            "Conference season group flow",
            "Preference learning",
        ]
    }


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "team-travel"}


@app.get("/health/detailed")
async def detailed_health(request: Request):
    state = services(request)
    health_checker = HealthChecker()

    def check_store():
        return state.flight_source.store.ping()

    def check_flight_source():
        breaker = state.flight_source.breaker
        return breaker is None or breaker.state != CircuitState.OPEN

    health_checker.register_check("store", check_store)
    health_checker.register_check("flight_source", check_flight_source)

    results = await health_checker.run_checks()
    status_code = 200 if results["status"] == "healthy" else 503
    return JSONResponse(results, status_code=status_code)


@app.get("/metrics")
async def metrics(request: Request):
    state = services(request)
    breaker = state.flight_source.breaker
    snapshot = get_metrics_snapshot()
    snapshot.update({
        "cache": state.flight_source.get_cache_stats(),
        "circuit_breaker": breaker.get_state() if breaker else None,
    })
    return snapshot


@app.post("/api/chat")
async def chat(request: Request, body: ChatRequest):
    state = services(request)
    user_id_var.set(body.user_id)
    log_event("chat_received", user_id=body.user_id, message_length=len(body.message))
    response = await state.assistant.handle_message(body.user_id, body.message)
    return {"user_id": body.user_id, "response": response}


@app.post("/api/flights/rank", response_model=List[RankedOffer])
async def rank(request: Request, body: RankRequest):
    state = services(request)
    prefs = body.preferences
    if prefs is None:
        prefs = state.preferences.get(body.user_id) if body.user_id else UserPreferences(user_id="anonymous")
    return rank_flights(body.offers, prefs)


@app.post("/api/calendar/scan/{user_id}")
async def scan_calendar(request: Request, user_id: str):
    state = services(request)
    state.directory.ensure_user(user_id)
    result = state.scanner.scan(user_id)
    return {**result.model_dump(mode="json"), "summary": format_scan_summary(result.needs)}


@app.get("/api/group-travel/detect/{org_id}")
async def detect_groups(request: Request, org_id: str):
    state = services(request)
    if state.directory.get_organization(org_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown organization: {org_id}")
    groups = state.coordinator.detect_groups(org_id)
    return {"org_id": org_id, "groups": [g.model_dump(mode="json") for g in groups]}


@app.post("/api/group-travel/plan")
async def plan_group(request: Request, body: PlanRequest):
    state = services(request)
    needs = body.needs
    if not needs and body.group_key:
        group = next((g for g in state.coordinator.detect_groups(body.org_id) if g.key == body.group_key), None)
        if group is None:
            raise HTTPException(status_code=404, detail=f"No travel group {body.group_key}")
        needs = group.needs
    try:
        result = await state.coordinator.plan_group_travel(body.org_id, needs, body.assignments, body.title)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.model_dump(mode="json")


@app.get("/api/preferences/{user_id}", response_model=UserPreferences)
async def get_preferences(request: Request, user_id: str):
    return services(request).preferences.get(user_id)


@app.put("/api/preferences/{user_id}", response_model=UserPreferences)
async def update_preferences(request: Request, user_id: str, partial: Dict[str, Any]):
    try:
        return services(request).preferences.update(user_id, partial)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


@app.post("/api/preferences/{user_id}/choices")
async def record_choice(request: Request, user_id: str, body: ChoiceRequest):
    result = services(request).learner.learn_from_choice(user_id, body.chosen, body.alternatives)
    return result.model_dump(mode="json")


@app.get("/admin/user/{user_id}/group-flow")
async def get_group_flow(request: Request, user_id: str):
    """Admin endpoint to view a user's stored group flow"""
    flow = services(request).group_flow.get_flow(user_id)
    if flow is None:
        return {"status": "no_active_flow", "user_id": user_id}
    return {"status": "active_flow", "user_id": user_id, "flow": flow.model_dump(mode="json")}


@app.post("/admin/user/{user_id}/reset")
async def reset_group_flow(request: Request, user_id: str):
    """Admin endpoint to drop a user's group flow"""
    existed = services(request).group_flow.reset(user_id)
    return {"status": "reset" if existed else "nothing_to_reset", "user_id": user_id}


# Apply middleware
app = ObservabilityMiddleware(app)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8001,
        reload=True,
        log_level="info"
    )
