from contextlib import asynccontextmanager
from datetime import datetime

from dotenv import load_dotenv

# Load env vars before anything reads them
load_dotenv()

import openai
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from smartburger_ai.common import metrics as metrics_lib
from smartburger_ai.common.cache import TTLCache
from smartburger_ai.common.types import ChatTurn
from src.agents import fallback
from src.agents.factory import build_agents, build_backend
from src.config import MODEL_PRICES, SEED_ON_STARTUP, USER_PROFILE_TTL_SECONDS
from src.database import db, init_db, seed_demo_data
from src.ordering import checkout, preferences, recommendations
from src.tools import alerts
from src.utils.logger import get_logger

logger = get_logger(__name__)

# Sentinel: resolve the backend from the environment at startup
_FROM_ENV = object()

NO_KEY_MESSAGE = (
    "El asistente no está disponible en este momento. "
    "Falta configurar GEMINI_API_KEY en el servidor."
)


# --- Models ---
class TurnModel(BaseModel):
    role: str = "user"
    content: str = ""

    def to_turn(self) -> ChatTurn:
        return ChatTurn(role="assistant" if self.role == "assistant" else "user", content=self.content)


class ChatRequest(BaseModel):
    messages: list[TurnModel] = Field(default_factory=list)
    sessionId: str | None = None
    userEmail: str | None = None


class AdminChatRequest(BaseModel):
    message: str = ""
    history: list[TurnModel] = Field(default_factory=list)


class CustomerModel(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class OrderItemModel(BaseModel):
    product_id: int
    quantity: int = 1
    unit_price: float | None = None
    customizations: dict | None = None


class OrderRequest(BaseModel):
    customer: CustomerModel = Field(default_factory=CustomerModel)
    items: list[OrderItemModel] = Field(default_factory=list)
    notes: str | None = None


class LikeModel(BaseModel):
    item: str
    context: str | None = None
    confidence: str = "medium"


class PreferencesRequest(BaseModel):
    userEmail: str | None = None
    likes: list[LikeModel] = Field(default_factory=list)


class ProductLookupRequest(BaseModel):
    productId: int


class CartLineModel(BaseModel):
    product: dict = Field(default_factory=dict)
    quantity: int = 1


class RecommendationContext(BaseModel):
    currentCart: list[CartLineModel] = Field(default_factory=list)


class RecommendationRequest(BaseModel):
    context: RecommendationContext = Field(default_factory=RecommendationContext)


def create_app(
    *,
    backend=_FROM_ENV,
    metrics: metrics_lib.InMemoryMetrics | None = None,
    cache: TTLCache | None = None,
    seed: bool = SEED_ON_STARTUP,
) -> FastAPI:
    metrics = metrics or metrics_lib.InMemoryMetrics(MODEL_PRICES)
    cache = cache if cache is not None else TTLCache()

    # --- Lifespan for Startup/Shutdown ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        print("\n=== SmartBurger AI Backend Starting ===\n")

        init_db()
        logger.info("Database initialized.")
        if seed and seed_demo_data():
            logger.info("Demo menu seeded.")

        llm = build_backend(metrics) if backend is _FROM_ENV else backend
        if llm is None:
            logger.warning("No LLM backend: María is disabled and Max answers in basic mode.")
        app.state.agents = build_agents(llm, cache)
        app.state.metrics = metrics

        yield

        maria = app.state.agents.get("maria")
        if maria is not None:
            await maria.drain()
        print("\n=== SmartBurger AI Backend Shutting Down ===\n")

    app = FastAPI(title="SmartBurger AI", lifespan=lifespan)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"error": "Error interno del servidor"})

    # --- Endpoints ---

    @app.post("/api/chat")
    async def chat_endpoint(req: ChatRequest, request: Request):
        if not req.sessionId:
            raise HTTPException(status_code=400, detail="sessionId es requerido")

        maria = request.app.state.agents.get("maria")
        if maria is None:
            return JSONResponse(status_code=500, content={"error": NO_KEY_MESSAGE})

        turns = [t.to_turn() for t in req.messages]
        timestamp = datetime.now().isoformat(timespec="seconds")
        try:
            turn = await maria(turns, session_id=req.sessionId, user_email=req.userEmail)
        except (openai.APIError, TimeoutError) as err:
            logger.error("Ordering agent failed, serving fallback menu: %s", err)
            return {
                "message": fallback.customer_fallback(db.list_active_products()),
                "cartActions": [],
                "confirmOrder": False,
                "timestamp": timestamp,
                "sessionId": req.sessionId,
                "notices": [],
                "fallback": True,
            }

        logger.info(
            "Chat %s: %d cart actions, confirm=%s",
            req.sessionId,
            len(turn.lines),
            turn.confirm_order,
        )
        return {
            "message": turn.display_text,
            "cartActions": turn.cart_actions(),
            "confirmOrder": turn.confirm_order,
            "timestamp": timestamp,
            "sessionId": req.sessionId,
            "notices": turn.notices,
        }

    @app.post("/api/admin/chat")
    async def admin_chat(req: AdminChatRequest, request: Request):
        if not req.message.strip():
            raise HTTPException(status_code=400, detail="El mensaje no puede estar vacío")

        max_agent = request.app.state.agents["max"]
        reply = await max_agent(req.message.strip(), [t.to_turn() for t in req.history])
        return reply.to_dict()

    @app.post("/api/admin/analyze")
    async def admin_analyze(request: Request):
        analysis = await request.app.state.agents["analyst"]()
        return {**analysis.to_dict(), "timestamp": datetime.now().isoformat(timespec="seconds")}

    @app.get("/api/admin/alerts")
    async def admin_alerts():
        snapshot = alerts.build_snapshot(db.list_products(), db.list_ingredients())
        return alerts.build_alert(snapshot)

    @app.get("/api/admin/usage")
    async def admin_usage(request: Request):
        return request.app.state.metrics.snapshot()

    @app.post("/api/orders")
    async def create_order(req: OrderRequest):
        lines = [
            checkout.OrderLine(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                customizations=item.customizations,
            )
            for item in req.items
        ]
        customer = checkout.Customer(**req.customer.model_dump())
        try:
            order = checkout.place_order(customer, lines, req.notes)
        except checkout.CheckoutError as err:
            raise HTTPException(status_code=400, detail=str(err))
        return {"success": True, "order": order}

    @app.post("/api/recommendations")
    async def get_recommendations(req: RecommendationRequest):
        cart = [line.model_dump() for line in req.context.currentCart]
        suggestions = recommendations.recommend(
            cart,
            db.list_active_products(),
            db.list_active_promotions(),
        )
        return {
            "success": True,
            "recommendations": [r.to_dict() for r in suggestions],
            "timestamp": datetime.now().isoformat(timespec="seconds"),
        }

    @app.get("/api/preferences")
    async def get_preferences(userEmail: str | None = None):
        if not userEmail:
            raise HTTPException(status_code=400, detail="userEmail es requerido")
        return {
            "likes": db.list_explicit_likes(userEmail),
            "profile": cache.get_or_set(
                f"profile:{userEmail.lower()}",
                lambda: preferences.build_user_profile(userEmail),
                USER_PROFILE_TTL_SECONDS,
            ).to_dict(),
        }

    @app.post("/api/preferences")
    async def save_preferences(req: PreferencesRequest):
        if not req.userEmail or not req.likes:
            raise HTTPException(status_code=400, detail="userEmail y likes son requeridos")
        for like in req.likes:
            db.save_explicit_like(req.userEmail, like.item, like.context, like.confidence)
        cache.delete(f"profile:{req.userEmail.lower()}")
        return {"success": True, "message": "Preferencias guardadas correctamente"}

    @app.get("/api/products/search")
    async def search_products(q: str | None = None):
        if not q:
            raise HTTPException(status_code=400, detail="Parámetro q es requerido")
        return {"products": db.search_products(q)}

    @app.post("/api/products/search")
    async def product_by_id(req: ProductLookupRequest):
        product = db.get_product(req.productId)
        if product is None:
            raise HTTPException(status_code=404, detail="Producto no encontrado")
        return {"product": product}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
