# flake8: noqa
import pytest

from recipe_share import reviews
from recipe_share.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError


@pytest.mark.parametrize(
    "value,expected",
    (
        (3.0, 3.0),
        (1.25, 1.3),
        (4.75, 4.8),
        (4.0 + 1.0 / 3.0, 4.3),
        (2.04, 2.0),
    ),
)
def test_round_rating_half_up(value, expected):
    assert reviews.round_rating(value) == expected


def test_stats_empty_recipe(db, make_user, make_recipe):
    recipe = make_recipe(make_user())
    assert reviews.recipe_stats(db, str(recipe.id)) == {"averageRating": 0, "totalReviews": 0}


def test_stats_average_and_count(db, make_user, make_recipe):
    recipe = make_recipe(make_user())
    for rating in (5, 4, 4):
        reviews.create_review(db, str(recipe.id), make_user(), rating, "tasty")
    assert reviews.recipe_stats(db, recipe.id) == {"averageRating": 4.3, "totalReviews": 3}


def test_stats_for_demo_and_unknown_ids(db):
    assert reviews.recipe_stats(db, "demo-2") == {"averageRating": 0, "totalReviews": 0}
    with pytest.raises(NotFoundError):
        reviews.recipe_stats(db, "demo-42")
    with pytest.raises(NotFoundError):
        reviews.recipe_stats(db, "12345")
    with pytest.raises(NotFoundError):
        reviews.recipe_stats(db, "not-an-id")


def test_second_review_by_same_user_conflicts(db, make_user, make_recipe):
    recipe = make_recipe(make_user())
    reviewer = make_user()
    reviews.create_review(db, recipe.id, reviewer, 4, "good")
    with pytest.raises(ConflictError):
        reviews.create_review(db, recipe.id, reviewer, 2, "changed my mind")
    assert reviews.recipe_stats(db, recipe.id)["totalReviews"] == 1


@pytest.mark.parametrize(
    "rating,comment",
    (
        (0, "ok"),
        (6, "ok"),
        (True, "ok"),
        (4.5, "ok"),
        (3, ""),
        (3, "   "),
        (3, "x" * 501),
    ),
)
def test_create_review_validation(db, make_user, make_recipe, rating, comment):
    recipe = make_recipe(make_user())
    with pytest.raises(ValidationError):
        reviews.create_review(db, recipe.id, make_user(), rating, comment)


def test_demo_recipes_are_not_reviewable(db, make_user):
    with pytest.raises(NotFoundError):
        reviews.create_review(db, "demo-1", make_user(), 5, "yum")


def test_username_snapshot_is_not_refreshed(db, make_user, make_recipe):
    recipe = make_recipe(make_user())
    reviewer = make_user(name="Original Name")
    review = reviews.create_review(db, recipe.id, reviewer, 5, "great")

    reviewer.name = "Renamed"
    db.commit()

    assert reviews.get_review(db, review.id).user_name == "Original Name"


def test_update_and_delete_require_owner(db, make_user, make_recipe):
    recipe = make_recipe(make_user())
    owner, intruder = make_user(), make_user()
    review = reviews.create_review(db, recipe.id, owner, 3, "fine")

    with pytest.raises(ForbiddenError):
        reviews.update_review(db, review.id, intruder, rating=1)
    with pytest.raises(ForbiddenError):
        reviews.delete_review(db, review.id, intruder)

    with pytest.raises(ValidationError):
        reviews.update_review(db, review.id, owner)
    with pytest.raises(ValidationError):
        reviews.update_review(db, review.id, owner, rating=9)

    updated = reviews.update_review(db, review.id, owner, comment="better the next day")
    assert updated.rating == 3
    assert updated.comment == "better the next day"

    reviews.delete_review(db, review.id, owner)
    with pytest.raises(NotFoundError):
        reviews.get_review(db, review.id)


def test_review_stats_scenario_over_http(client, register, create_recipe):
    _, owner_headers, _ = register()
    _, h1, _ = register()
    _, h2, _ = register()
    rid = create_recipe(owner_headers)["id"]

    res = client.post(f"/api/reviews/recipe/{rid}", json={"rating": 4, "comment": "good"}, headers=h1)
    assert res.status_code == 201
    first_id = res.json()["review"]["id"]
    res = client.post(f"/api/reviews/recipe/{rid}", json={"rating": 2, "comment": "meh"}, headers=h2)
    assert res.status_code == 201

    body = client.get(f"/api/reviews/recipe/{rid}").json()
    assert body["stats"] == {"averageRating": 3.0, "totalReviews": 2}
    assert [r["rating"] for r in body["reviews"]] == [2, 4]  # newest first

    res = client.delete(f"/api/reviews/{first_id}", headers=h1)
    assert res.status_code == 200
    assert res.json()["message"] == "Review deleted successfully"

    body = client.get(f"/api/reviews/recipe/{rid}").json()
    assert body["stats"] == {"averageRating": 2.0, "totalReviews": 1}


def test_review_http_errors(client, register, create_recipe):
    _, owner_headers, _ = register()
    _, reviewer_headers, _ = register()
    _, other_headers, _ = register()
    rid = create_recipe(owner_headers)["id"]

    assert client.post(f"/api/reviews/recipe/{rid}", json={"rating": 4, "comment": "x"}).status_code == 401
    assert client.post(f"/api/reviews/recipe/{rid}", json={"rating": 6, "comment": "x"}, headers=reviewer_headers).status_code == 400
    assert client.post(f"/api/reviews/recipe/{rid}", json={"rating": 3, "comment": ""}, headers=reviewer_headers).status_code == 400
    assert client.post("/api/reviews/recipe/999", json={"rating": 3, "comment": "x"}, headers=reviewer_headers).status_code == 404

    res = client.post(f"/api/reviews/recipe/{rid}", json={"rating": 3, "comment": "ok"}, headers=reviewer_headers)
    review_id = res.json()["review"]["id"]
    res = client.post(f"/api/reviews/recipe/{rid}", json={"rating": 5, "comment": "again"}, headers=reviewer_headers)
    assert res.status_code == 409
    assert res.json()["message"] == "You have already reviewed this recipe"

    assert client.put(f"/api/reviews/{review_id}", json={}, headers=reviewer_headers).status_code == 400
    assert client.put(f"/api/reviews/{review_id}", json={"rating": 1}, headers=other_headers).status_code == 403
    assert client.delete(f"/api/reviews/{review_id}", headers=other_headers).status_code == 403

    res = client.put(f"/api/reviews/{review_id}", json={"rating": 5}, headers=reviewer_headers)
    assert res.status_code == 200
    assert res.json()["review"]["rating"] == 5
    assert client.get(f"/api/reviews/{review_id}").json()["review"]["comment"] == "ok"
    assert client.get("/api/reviews/424242").status_code == 404


def test_reviews_pagination_and_link_header(client, register, create_recipe):
    _, owner_headers, _ = register()
    rid = create_recipe(owner_headers)["id"]
    for i in range(5):
        _, h, _ = register()
        client.post(f"/api/reviews/recipe/{rid}", json={"rating": 1 + i % 5, "comment": f"c{i}"}, headers=h)

    res = client.get(f"/api/reviews/recipe/{rid}?page=2&limit=2")
    assert res.status_code == 200
    body = res.json()
    assert body["pagination"] == {"currentPage": 2, "totalPages": 3, "totalReviews": 5, "limit": 2}
    assert [r["comment"] for r in body["reviews"]] == ["c2", "c1"]
    link = res.headers.get("Link")
    assert link is not None
    assert 'rel="prev"' in link and 'rel="next"' in link

    res = client.get(f"/api/reviews/recipe/{rid}?page=1&limit=2")
    link = res.headers.get("Link")
    assert 'rel="prev"' not in link and 'rel="next"' in link


def test_demo_recipe_reviews_are_empty(client):
    res = client.get("/api/reviews/recipe/demo-4")
    assert res.status_code == 200
    body = res.json()
    assert body["reviews"] == []
    assert body["stats"] == {"averageRating": 0, "totalReviews": 0}
    assert client.get("/api/reviews/recipe/demo-404").status_code == 404


def test_concurrent_double_review_conflicts(db, session_factory, make_user, make_recipe, monkeypatch):
    from recipe_share import models

    recipe_id = make_recipe(make_user()).id
    reviewer = make_user()
    reviewer_id = reviewer.id

    # Another request writes the same review between the check and the commit
    def existing_racing(db_, recipe_key, user_key):
        other = session_factory()
        other.add(models.Review(recipe_id=recipe_key, user_id=user_key, user_name="other tab", rating=5, comment="first"))
        other.commit()
        other.close()
        return None

    monkeypatch.setattr(reviews, "_existing_review", existing_racing)
    with pytest.raises(ConflictError):
        reviews.create_review(db, recipe_id, reviewer, 2, "second")
    monkeypatch.undo()

    stats = reviews.recipe_stats(db, recipe_id)
    assert stats == {"averageRating": 5.0, "totalReviews": 1}
    assert db.query(models.Review).filter(models.Review.user_id == reviewer_id).count() == 1
