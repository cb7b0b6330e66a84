"""
FastAPI application for the Laroza storefront console.

The API process behaves like one more tab on an origin: every mutation goes
through the same services as the console surfaces, so it saves the whole
collection and broadcasts the change to every other tab on that origin.

Run with:
    uv run uvicorn api.main:app --reload

Then visit http://localhost:8000/docs for interactive API documentation.
"""

import datetime
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from data_sync.browser import Origin, Tab
from data_sync.config import SyncSettings
from data_sync.services import (
    DashboardOverview,
    EmptyCartError,
    InsufficientStockError,
    InvalidStatusTransitionError,
    PromotionError,
    build_overview,
)
from storefront.auth import RegistrationError
from storefront.models import (
    CartItem,
    Order,
    OrderStatus,
    Product,
    ProductCategory,
    Promotion,
    Review,
    UserSession,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
)


# Request models
class LoginRequest(BaseModel):
    username: str
    password: str


class RegisterRequest(BaseModel):
    username: str
    password: str
    confirm_password: str


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    category: ProductCategory
    price: float = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    low_stock_threshold: int = Field(..., ge=0)
    description: str = Field(..., min_length=1)
    image: Optional[str] = None


class StockAdjustment(BaseModel):
    change: int


class OrderCreate(BaseModel):
    customer_name: str = Field(..., min_length=1)
    items: list[CartItem]
    promo_code: Optional[str] = None


class StatusUpdate(BaseModel):
    status: OrderStatus


class PromotionIn(BaseModel):
    code: str = Field(..., min_length=1)
    discount: float = Field(..., ge=0, le=100)
    valid_from: datetime.date
    valid_to: datetime.date
    active: bool = True
    max_uses: Optional[int] = Field(default=None, ge=0)
    current_uses: int = Field(default=0, ge=0)


class PromoCodeCheck(BaseModel):
    code: str


class ReviewCreate(BaseModel):
    order_id: str
    product_id: str
    customer_name: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


def _tab(request: Request) -> Tab:
    return request.app.state.tab


def create_app(origin: Optional[Origin] = None, tab_name: str = "api") -> FastAPI:
    """
    Build the application as a tab on `origin`.

    A fresh origin (with settings from the environment) is created when none
    is given. Tests pass their own origin to watch the broadcasts from other
    tabs.
    """
    origin = origin or Origin(settings=SyncSettings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup and shutdown."""
        logging.info(f"Starting Laroza console API as {app.state.tab.name}")
        yield
        app.state.tab.close()
        logging.info("Shutting down")

    app = FastAPI(
        title="Laroza Storefront Console",
        description="""
    Storefront and back-office API for the Laroza lighting shop.

    Every write is broadcast to the other tabs sharing the same origin, so
    open dashboards and shop listings refresh without polling.
    """,
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.origin = origin
    app.state.tab = origin.open_tab(tab_name)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get("/health", tags=["Health"])
    def health_check(request: Request):
        """Health check endpoint."""
        tab = _tab(request)
        return {
            "status": "healthy",
            "service": "laroza-storefront",
            "transport": tab.sync.transport.name,
        }

    # =========================================================================
    # Session
    # =========================================================================

    @app.post("/login", response_model=UserSession, tags=["Session"])
    def login(body: LoginRequest, request: Request):
        session = _tab(request).session.login(body.username, body.password)
        if session is None:
            raise HTTPException(
                status_code=401,
                detail="Invalid credentials. Please check your username and password.",
            )
        return session

    @app.post("/register", tags=["Session"])
    def register(body: RegisterRequest, request: Request):
        try:
            account = _tab(request).session.register(
                body.username, body.password, body.confirm_password
            )
        except RegistrationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"username": account.username}

    # =========================================================================
    # Catalog and inventory
    # =========================================================================

    @app.get("/products", response_model=list[Product], tags=["Catalog"])
    def list_products(
        request: Request,
        category: Optional[ProductCategory] = None,
        search: str = "",
    ):
        needle = search.strip().lower()
        return [
            p for p in _tab(request).data_store.get_products()
            if (category is None or p.category == category) and needle in p.name.lower()
        ]

    @app.post("/products", response_model=Product, status_code=201, tags=["Catalog"])
    def create_product(body: ProductCreate, request: Request):
        return _tab(request).inventory.add_product(**body.model_dump())

    @app.post("/products/{product_id}/stock", response_model=Product, tags=["Inventory"])
    def adjust_stock(product_id: str, body: StockAdjustment, request: Request):
        product = _tab(request).inventory.adjust_stock(product_id, body.change)
        if product is None:
            raise HTTPException(status_code=404, detail=f"Product not found: {product_id}")
        return product

    @app.get("/inventory/low-stock", response_model=list[Product], tags=["Inventory"])
    def low_stock(request: Request):
        return _tab(request).inventory.low_stock_products()

    # =========================================================================
    # Orders
    # =========================================================================

    @app.get("/orders", response_model=list[Order], tags=["Orders"])
    def list_orders(
        request: Request,
        customer: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ):
        store = _tab(request).data_store
        orders = store.get_orders_by_customer(customer) if customer else store.get_orders()
        if status is not None:
            orders = [o for o in orders if o.status == status]
        return orders

    @app.post("/orders", response_model=Order, status_code=201, tags=["Orders"])
    def place_order(body: OrderCreate, request: Request):
        try:
            return _tab(request).ordering.place_order(
                body.customer_name, body.items, promo_code=body.promo_code
            )
        except (InsufficientStockError, PromotionError, EmptyCartError) as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.patch("/orders/{order_id}", response_model=Order, tags=["Orders"])
    def update_order_status(order_id: str, body: StatusUpdate, request: Request):
        try:
            order = _tab(request).ordering.update_order_status(order_id, body.status)
        except InvalidStatusTransitionError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if order is None:
            raise HTTPException(status_code=404, detail=f"Order not found: {order_id}")
        return order

    # =========================================================================
    # Promotions
    # =========================================================================

    @app.get("/promotions", response_model=list[Promotion], tags=["Promotions"])
    def list_promotions(request: Request):
        return _tab(request).data_store.get_promotions()

    @app.post("/promotions", response_model=Promotion, status_code=201, tags=["Promotions"])
    def create_promotion(body: PromotionIn, request: Request):
        return _tab(request).promotions.create_promotion(**body.model_dump())

    @app.put("/promotions/{promotion_id}", response_model=Promotion, tags=["Promotions"])
    def update_promotion(promotion_id: str, body: PromotionIn, request: Request):
        tab = _tab(request)
        if not any(p.id == promotion_id for p in tab.data_store.get_promotions()):
            raise HTTPException(status_code=404, detail=f"Promotion not found: {promotion_id}")
        return tab.promotions.save_promotion(Promotion(id=promotion_id, **body.model_dump()))

    @app.delete("/promotions/{promotion_id}", status_code=204, tags=["Promotions"])
    def delete_promotion(promotion_id: str, request: Request):
        if not _tab(request).promotions.delete_promotion(promotion_id):
            raise HTTPException(status_code=404, detail=f"Promotion not found: {promotion_id}")

    @app.post("/promotions/validate", tags=["Promotions"])
    def validate_promo_code(body: PromoCodeCheck, request: Request):
        try:
            promotion = _tab(request).promotions.validate_code(body.code)
        except PromotionError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"code": promotion.code, "discount": promotion.discount}

    # =========================================================================
    # Reviews
    # =========================================================================

    @app.get("/reviews", response_model=list[Review], tags=["Reviews"])
    def list_reviews(request: Request, product_id: Optional[str] = None):
        store = _tab(request).data_store
        return store.get_reviews_for_product(product_id) if product_id else store.get_reviews()

    @app.post("/reviews", response_model=Review, status_code=201, tags=["Reviews"])
    def submit_review(body: ReviewCreate, request: Request):
        tab = _tab(request)
        order = tab.data_store.get_order(body.order_id)
        if order is None:
            raise HTTPException(status_code=404, detail=f"Order not found: {body.order_id}")
        try:
            return tab.reviews.submit_review(
                order, body.product_id, body.customer_name, body.rating, body.comment
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.delete("/reviews/{review_id}", status_code=204, tags=["Reviews"])
    def delete_review(review_id: str, request: Request):
        if not _tab(request).reviews.delete_review(review_id):
            raise HTTPException(status_code=404, detail=f"Review not found: {review_id}")

    # =========================================================================
    # Dashboard
    # =========================================================================

    @app.get("/dashboard", response_model=DashboardOverview, tags=["Dashboard"])
    def dashboard(request: Request):
        tab = _tab(request)
        return build_overview(tab.data_store, tab.promotions.today())

    return app


app = create_app()
