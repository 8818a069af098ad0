import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from bson.errors import BSONError
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

import settings
from auth import create_access_token, get_current_user, require_admin, require_same_user
from database import (
    COLL_ANNOUNCEMENTS,
    COLL_COMMENTS,
    COLL_PAYMENTS,
    COLL_POSTS,
    COLL_TAGS,
    COLL_USERS,
    COLL_WARNINGS,
    close_client,
    delete_result,
    get_database,
    get_db,
    insert_result,
    open_client,
    parse_object_id,
    serialize,
    serialize_many,
    update_result,
)
from payments import create_payment_intent
from policy import can_create_post, quota_message
from schemas import (
    Announcement as AnnouncementSchema,
    Comment as CommentSchema,
    CommentReport,
    Payment as PaymentSchema,
    Post as PostSchema,
    PostStatus,
    Stats,
    Tag as TagSchema,
    Token,
    TokenRequest,
    User as UserSchema,
    WarningNote as WarningSchema,
)

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

MEMBER_BADGE_URL = "https://i.ibb.co.com/PmPQ4Qr/gold.jpg"
RECENT_POST_LIMIT = 3

router = APIRouter()


@router.get("/")
def read_root():
    return {"message": "Thread Hive is running"}


@router.get("/test")
def test_database(request: Request):
    db = getattr(request.app.state, "db", None)
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": settings.DATABASE_NAME,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        if db is not None:
            response["collections"] = db.list_collection_names()[:10]
            response["database"] = "✅ Connected"
            response["connection_status"] = "Connected"
    except PyMongoError as e:
        response["database"] = f"⚠️ Error: {str(e)[:80]}"
    return response


# JWT
@router.post("/jwt", response_model=Token)
async def issue_token(payload: TokenRequest):
    return Token(token=create_access_token(payload.model_dump()))


# Users
@router.post("/users")
async def create_user(payload: UserSchema, db: Database = Depends(get_db)):
    if db[COLL_USERS].find_one({"email": payload.email}):
        return {"message": "user already exists", "insertedId": None}
    # Role and membership are only granted by promotion and payment.
    doc = payload.model_dump(exclude_none=True, exclude={"role", "membership", "badge", "status"})
    doc["membership"] = False
    return insert_result(db[COLL_USERS].insert_one(doc))


@router.get("/users")
async def list_users(admin=Depends(require_admin), db: Database = Depends(get_db)):
    return serialize_many(db[COLL_USERS].find())


@router.get("/users/admin/{email}")
async def check_admin(email: str, decoded: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    require_same_user(email, decoded)
    user = db[COLL_USERS].find_one({"email": email})
    return {"admin": bool(user) and user.get("role") == "admin"}


@router.patch("/users/admin/{id}")
async def promote_user(id: str, admin=Depends(require_admin), db: Database = Depends(get_db)):
    res = db[COLL_USERS].update_one({"_id": parse_object_id(id)}, {"$set": {"role": "admin"}})
    if res.modified_count:
        logger.info("User %s promoted to admin by %s", id, admin.get("email"))
    return update_result(res)


@router.get("/users/{email}", dependencies=[Depends(get_current_user)])
async def get_user(email: str, db: Database = Depends(get_db)):
    return serialize(db[COLL_USERS].find_one({"email": email}))


# Posts
@router.get("/posts")
async def list_posts(db: Database = Depends(get_db)):
    return serialize_many(db[COLL_POSTS].find().sort("date", -1))


@router.get("/post-details/{id}")
async def get_post(id: str, db: Database = Depends(get_db)):
    return serialize(db[COLL_POSTS].find_one({"_id": parse_object_id(id)}))


@router.post("/posts", status_code=201)
async def create_post(payload: PostSchema, decoded: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    email = decoded["email"]
    if payload.userEmail and payload.userEmail != email:
        raise HTTPException(status_code=403, detail="Forbidden access")

    user = db[COLL_USERS].find_one({"email": email})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    # Count and insert are separate operations; concurrent requests may overshoot the limit.
    post_count = db[COLL_POSTS].count_documents({"userEmail": email})
    if not can_create_post(bool(user.get("membership")), post_count):
        logger.info("Post quota reached for %s (%d posts)", email, post_count)
        raise HTTPException(status_code=400, detail=quota_message())

    doc = payload.model_dump(exclude_none=True)
    doc["userEmail"] = email
    doc.setdefault("date", datetime.now(timezone.utc))
    result = insert_result(db[COLL_POSTS].insert_one(doc))
    return {"message": "Post added successfully!", "result": result}


@router.get("/my-post", response_model=PostStatus)
async def my_post_status(userEmail: Optional[str] = None, db: Database = Depends(get_db)):
    if not userEmail:
        return PostStatus(membership=False, postCount=0)
    user = db[COLL_USERS].find_one({"email": userEmail})
    if not user:
        return PostStatus(membership=False, postCount=0)
    post_count = db[COLL_POSTS].count_documents({"userEmail": userEmail})
    return PostStatus(membership=bool(user.get("membership")), postCount=post_count)


@router.get("/post-search")
async def search_posts(tag: str = "", db: Database = Depends(get_db)):
    query = {"tag": {"$regex": re.escape(tag), "$options": "i"}}
    items = serialize_many(db[COLL_POSTS].find(query))
    if not items:
        raise HTTPException(status_code=404, detail="No posts found")
    return items


@router.get("/posts/recent/{email}")
async def recent_posts(email: str, db: Database = Depends(get_db)):
    cursor = db[COLL_POSTS].find({"userEmail": email}).sort("date", -1).limit(RECENT_POST_LIMIT)
    return serialize_many(cursor)


@router.get("/posts/{email}")
async def posts_by_owner(email: str, db: Database = Depends(get_db)):
    return serialize_many(db[COLL_POSTS].find({"userEmail": email}))


@router.delete("/posts/{id}")
async def delete_post(id: str, db: Database = Depends(get_db)):
    # Comments on the post are left in place.
    return delete_result(db[COLL_POSTS].delete_one({"_id": parse_object_id(id)}))


@router.patch("/posts/upVote/{id}")
async def up_vote(id: str, db: Database = Depends(get_db)):
    res = db[COLL_POSTS].update_one({"_id": parse_object_id(id)}, {"$inc": {"upVote": 1}})
    return update_result(res)


@router.patch("/posts/downVote/{id}")
async def down_vote(id: str, db: Database = Depends(get_db)):
    res = db[COLL_POSTS].update_one({"_id": parse_object_id(id)}, {"$inc": {"downVote": 1}})
    return update_result(res)


# Payments
@router.post("/create-payment-intent")
def payment_intent():
    intent = create_payment_intent(settings.MEMBERSHIP_PRICE_USD)
    return {"clientSecret": intent.get("client_secret")}


@router.post("/successedPayment")
async def record_payment(payload: PaymentSchema, db: Database = Depends(get_db)):
    return insert_result(db[COLL_PAYMENTS].insert_one(payload.model_dump(exclude_none=True)))


@router.patch("/successedPayment/{email}")
async def grant_membership(email: str, db: Database = Depends(get_db)):
    updated_doc = {"$set": {"badge": MEMBER_BADGE_URL, "membership": True, "status": "Active"}}
    res = db[COLL_USERS].update_one({"email": email}, updated_doc)
    if res.matched_count:
        logger.info("Membership granted to %s", email)
    else:
        logger.warning("Membership grant for unknown user %s", email)
    return update_result(res)


# Announcements
@router.post("/announcements")
async def create_announcement(payload: AnnouncementSchema, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return insert_result(db[COLL_ANNOUNCEMENTS].insert_one(payload.model_dump(exclude_none=True)))


@router.get("/announcements")
async def list_announcements(db: Database = Depends(get_db)):
    return serialize_many(db[COLL_ANNOUNCEMENTS].find())


# Comments
@router.post("/comments")
async def create_comment(payload: CommentSchema, db: Database = Depends(get_db)):
    new_comment = {
        "postId": str(parse_object_id(payload.postId)),
        "email": payload.email,
        "commentText": payload.commentText,
        "feedback": "",
        "reported": False,
    }
    return insert_result(db[COLL_COMMENTS].insert_one(new_comment))


@router.get("/comments/{postId}")
async def list_comments(postId: str, db: Database = Depends(get_db)):
    return serialize_many(db[COLL_COMMENTS].find({"postId": str(parse_object_id(postId))}))


@router.delete("/comments/{id}")
async def delete_comment(id: str, db: Database = Depends(get_db)):
    return delete_result(db[COLL_COMMENTS].delete_one({"_id": parse_object_id(id)}))


@router.patch("/comment-count/{postId}")
async def refresh_comment_count(postId: str, db: Database = Depends(get_db)):
    oid = parse_object_id(postId)
    count = db[COLL_COMMENTS].count_documents({"postId": str(oid)})
    res = db[COLL_POSTS].update_one({"_id": oid}, {"$set": {"postCount": count}})
    return {**update_result(res), "postCount": count}


@router.patch("/reportedComment/{id}")
async def report_comment(id: str, payload: CommentReport, db: Database = Depends(get_db)):
    updated_doc = {"$set": {"reported": True, "feedback": payload.feedback}}
    return update_result(db[COLL_COMMENTS].update_one({"_id": parse_object_id(id)}, updated_doc))


# Stats
@router.get("/stats", response_model=Stats)
async def site_stats(db: Database = Depends(get_db)):
    return Stats(
        posts=db[COLL_POSTS].count_documents({}),
        comments=db[COLL_COMMENTS].count_documents({}),
        users=db[COLL_USERS].count_documents({}),
    )


# Tags
@router.post("/tags")
async def create_tag(payload: TagSchema, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return insert_result(db[COLL_TAGS].insert_one(payload.model_dump(exclude_none=True)))


@router.get("/tags")
async def list_tags(db: Database = Depends(get_db)):
    return serialize_many(db[COLL_TAGS].find())


# Warnings
@router.post("/warnings")
async def create_warning(payload: WarningSchema, admin=Depends(require_admin), db: Database = Depends(get_db)):
    return insert_result(db[COLL_WARNINGS].insert_one(payload.model_dump(exclude_none=True)))


@router.get("/warnings")
async def list_warnings(db: Database = Depends(get_db)):
    return serialize_many(db[COLL_WARNINGS].find())


async def store_failure_handler(request: Request, exc: Exception):
    logger.exception("Database operation failed on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Database error"})


def create_app(mongo_client: Optional[MongoClient] = None) -> FastAPI:
    """Build the API around a single MongoClient.

    When ``mongo_client`` is given it is adopted as-is (tests pass an in-memory
    client); otherwise one is opened from ``DATABASE_URL`` at startup. Either
    way it is closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = mongo_client if mongo_client is not None else open_client(settings.DATABASE_URL)
        app.state.db = get_database(client, settings.DATABASE_NAME)
        try:
            yield
        finally:
            app.state.db = None
            close_client(client)

    app = FastAPI(title="Thread Hive API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    for exc_class in (PyMongoError, BSONError, OverflowError):
        app.add_exception_handler(exc_class, store_failure_handler)
    app.include_router(router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
