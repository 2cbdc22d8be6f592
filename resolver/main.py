# File: resolver/main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi import _rate_limit_exceeded_handler

from resolver.core.config import cors_origins_list
from resolver.core.errors import ResolverError
from resolver.core.ratelimit import limiter
from resolver.db.session import SessionLocal
from resolver.routers import auth, issues, profiles, vouchers, push_subscriptions
from resolver.services.changes import ChangeFeed
from resolver.services.notify_push import PushFanout

app = FastAPI(title="Neighborhood Resolver API")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# change notifications are scoped to this application instance
app.state.changes = ChangeFeed()
app.state.changes.subscribe(PushFanout(SessionLocal))

@app.exception_handler(ResolverError)
async def resolver_error_handler(request: Request, exc: ResolverError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins_list(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/health")
def health():
    return {"ok": True}

app.include_router(auth.router)
app.include_router(issues.router)
app.include_router(profiles.router)
app.include_router(vouchers.router)
app.include_router(push_subscriptions.router)
