"""Auth endpoints."""
import logging
import ipaddress

import redis
from redis.exceptions import RedisError
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..config import settings
from ..database import get_db
from ..domain_errors import DomainError
from ..models import User
from ..schemas import LoginRequest, LoginResponse, SignupRequest, UserResponse
from ..use_cases.accounts import login_use_case, signup_use_case

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


_redis_client = None


def _get_redis():
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


def _get_client_ip(request: Request) -> str:
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # X-Forwarded-For may contain a list: client, proxy1, proxy2
            candidate = forwarded.split(",")[0].strip()
            try:
                ipaddress.ip_address(candidate)
                return candidate
            except ValueError:
                pass

    if request.client:
        return request.client.host
    return "unknown"


def _set_no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"


def _incr_with_ttl(key: str, ttl_seconds: int) -> tuple[int, int]:
    """
    Increment a Redis counter and ensure it has an expiry.
    Returns (value, ttl_remaining_seconds).
    """
    r = _get_redis()
    value = r.incr(key)
    if value == 1:
        r.expire(key, ttl_seconds)
    ttl = r.ttl(key)
    if ttl is None or ttl < 0:
        ttl = ttl_seconds
    return int(value), int(ttl)


def _enforce_login_rate_limits(*, request: Request, email: str | None) -> None:
    ip = _get_client_ip(request)
    try:
        attempts, ttl = _incr_with_ttl(f"auth:rl:login:ip:{ip}", 60)
        if attempts > settings.AUTH_LOGIN_IP_LIMIT_PER_MINUTE:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many login attempts. Try again later.",
                headers={"Retry-After": str(ttl)},
            )

        if email:
            lock_ttl = _get_redis().ttl(f"auth:lock:login:user:{email.strip().lower()}")
            if lock_ttl and lock_ttl > 0:
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail="Account temporarily locked due to failed logins. Try again later.",
                    headers={"Retry-After": str(int(lock_ttl))},
                )
    except RedisError:
        # Fail open if Redis is down to avoid total auth outage.
        logger.exception("Redis error during login rate limiting (fail-open)")


def _register_login_failure(*, email: str | None) -> None:
    if not email:
        return
    key = email.strip().lower()
    try:
        fails, _ = _incr_with_ttl(f"auth:fail:login:user:{key}", settings.AUTH_LOGIN_USER_LOCK_SECONDS)
        if fails >= settings.AUTH_LOGIN_USER_FAIL_THRESHOLD:
            _get_redis().set(f"auth:lock:login:user:{key}", "1", ex=settings.AUTH_LOGIN_USER_LOCK_SECONDS)
    except RedisError:
        logger.exception("Redis error during login failure tracking (fail-open)")


def _clear_login_failures(*, email: str) -> None:
    key = email.strip().lower()
    try:
        r = _get_redis()
        r.delete(f"auth:fail:login:user:{key}")
        r.delete(f"auth:lock:login:user:{key}")
    except RedisError:
        logger.exception("Redis error during login failure cleanup (ignored)")


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    """Login with email and password."""
    _set_no_store(response)
    _enforce_login_rate_limits(request=request, email=payload.email)

    try:
        session = login_use_case(db=db, data=payload)
    except DomainError as exc:
        if exc.http_status == status.HTTP_401_UNAUTHORIZED:
            _register_login_failure(email=payload.email)
        raise

    _clear_login_failures(email=session.user.email)
    return LoginResponse(
        user=UserResponse.model_validate(session.user),
        access_token=session.access_token,
    )


@router.post("/signup", response_model=LoginResponse)
def signup(payload: SignupRequest, response: Response, db: Session = Depends(get_db)):
    """Create an account with its organization and start the trial."""
    _set_no_store(response)
    session = signup_use_case(db=db, data=payload)
    return LoginResponse(
        user=UserResponse.model_validate(session.user),
        access_token=session.access_token,
    )


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user
