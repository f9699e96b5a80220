from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import auth, crud, reviews, saved, schemas
from .config import get_config
from .db import get_db, init_db
from .demo import demo_recipes
from .errors import RecipeShareError
from .logger import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    # Initialize DB once at startup
    init_db()
    yield


app = FastAPI(title="Recipe Share API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RecipeShareError)
async def recipe_share_error_handler(request: Request, exc: RecipeShareError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())[1:])
        parts.append(f"{field}: {err['msg']}" if field else err["msg"])
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "; ".join(parts) or "Invalid request"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"},
    )


def _link_header(request: Request, page: int, total_pages: int, limit: int) -> str:
    links = []
    if page > 1:
        prev_url = request.url.include_query_params(page=page - 1, limit=limit)
        links.append(f'<{prev_url}>; rel="prev"')
    if page < total_pages:
        next_url = request.url.include_query_params(page=page + 1, limit=limit)
        links.append(f'<{next_url}>; rel="next"')
    return ", ".join(links)


# Auth

@app.post("/api/auth/register", status_code=201)
def register(payload: schemas.RegisterRequest, db: Session = Depends(get_db)):
    user = auth.register_user(db, payload.name, payload.email, payload.password)
    token = auth.create_session(db, user)
    return {"success": True, "data": {"user": auth.user_to_dict(user), "token": token}}


@app.post("/api/auth/login")
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    user = auth.authenticate_user(db, payload.email, payload.password)
    token = auth.create_session(db, user)
    return {"success": True, "data": {"user": auth.user_to_dict(user), "token": token}}


@app.get("/api/auth/me")
def me(user=Depends(auth.get_current_user)):
    return {"success": True, "data": auth.user_to_dict(user)}


# Recipes

@app.get("/api/recipes")
def list_recipes(
    include_demo: bool = False,
    db: Session = Depends(get_db),
    user=Depends(auth.get_optional_user),
):
    saved_ids = saved.saved_ids(db, user) if user else set()
    data = [crud.recipe_to_dict(r, str(r.id) in saved_ids) for r in crud.get_recipes(db)]
    if include_demo:
        data.extend(demo_recipes(saved_ids))
    return {"success": True, "data": data}


@app.get("/api/recipes/demo")
def list_demo_recipes(db: Session = Depends(get_db), user=Depends(auth.get_optional_user)):
    saved_ids = saved.saved_ids(db, user) if user else set()
    return {"success": True, "data": demo_recipes(saved_ids)}


@app.get("/api/recipes/my")
def my_recipes(db: Session = Depends(get_db), user=Depends(auth.get_current_user)):
    saved_ids = saved.saved_ids(db, user)
    recipes = crud.get_user_recipes(db, user.id)
    return {"success": True, "data": [crud.recipe_to_dict(r, str(r.id) in saved_ids) for r in recipes]}


@app.get("/api/recipes/saved")
def saved_recipes(db: Session = Depends(get_db), user=Depends(auth.get_current_user)):
    return {"success": True, "data": saved.list_saved_recipes(db, user)}


@app.post("/api/recipes", status_code=201)
def create_recipe(
    recipe: schemas.RecipeCreate,
    db: Session = Depends(get_db),
    user=Depends(auth.get_current_user),
):
    db_recipe = crud.create_recipe(db, recipe, user)
    return {"success": True, "data": crud.recipe_to_dict(db_recipe)}


@app.get("/api/recipes/{recipe_id}")
def get_recipe(recipe_id: str, db: Session = Depends(get_db), user=Depends(auth.get_optional_user)):
    saved_ids = saved.saved_ids(db, user) if user else set()
    return {"success": True, "data": crud.find_recipe(db, recipe_id, saved_ids)}


@app.patch("/api/recipes/{recipe_id}")
def update_recipe(
    recipe_id: str,
    recipe: schemas.RecipeUpdate,
    db: Session = Depends(get_db),
    user=Depends(auth.get_current_user),
):
    db_recipe = crud.update_recipe(db, recipe_id, recipe, user)
    is_saved = str(db_recipe.id) in saved.saved_ids(db, user)
    return {"success": True, "data": crud.recipe_to_dict(db_recipe, is_saved)}


@app.delete("/api/recipes/{recipe_id}")
def delete_recipe(recipe_id: str, db: Session = Depends(get_db), user=Depends(auth.get_current_user)):
    crud.delete_recipe(db, recipe_id, user)
    return {"success": True, "message": f"Recipe with id: {recipe_id} deleted"}


@app.post("/api/recipes/{recipe_id}/save")
def save_recipe(recipe_id: str, db: Session = Depends(get_db), user=Depends(auth.get_current_user)):
    message = saved.save_recipe(db, user, recipe_id)
    return {"success": True, "message": message}


@app.delete("/api/recipes/{recipe_id}/save")
def unsave_recipe(recipe_id: str, db: Session = Depends(get_db), user=Depends(auth.get_current_user)):
    message = saved.unsave_recipe(db, user, recipe_id)
    return {"success": True, "message": message}


# Reviews

@app.get("/api/reviews/recipe/{recipe_id}")
def recipe_reviews(
    recipe_id: str,
    request: Request,
    response: Response,
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    result = reviews.list_recipe_reviews(db, recipe_id, page=page, limit=limit)
    pagination = result["pagination"]
    link = _link_header(request, pagination["currentPage"], pagination["totalPages"], pagination["limit"])
    if link:
        response.headers["Link"] = link
    return result


@app.post("/api/reviews/recipe/{recipe_id}", status_code=201)
def create_review(
    recipe_id: str,
    payload: schemas.ReviewCreate,
    db: Session = Depends(get_db),
    user=Depends(auth.get_current_user),
):
    review = reviews.create_review(db, recipe_id, user, payload.rating, payload.comment)
    return {"message": "Review created successfully", "review": reviews.review_to_dict(review)}


@app.get("/api/reviews/{review_id}")
def get_review(review_id: str, db: Session = Depends(get_db)):
    return {"review": reviews.review_to_dict(reviews.get_review(db, review_id))}


@app.put("/api/reviews/{review_id}")
def update_review(
    review_id: str,
    payload: schemas.ReviewUpdate,
    db: Session = Depends(get_db),
    user=Depends(auth.get_current_user),
):
    review = reviews.update_review(db, review_id, user, rating=payload.rating, comment=payload.comment)
    return {"message": "Review updated successfully", "review": reviews.review_to_dict(review)}


@app.delete("/api/reviews/{review_id}")
def delete_review(review_id: str, db: Session = Depends(get_db), user=Depends(auth.get_current_user)):
    reviews.delete_review(db, review_id, user)
    return {"message": "Review deleted successfully"}
