from fastapi.concurrency import run_in_threadpool
from passlib.context import CryptContext

# Password and refresh-token hashing
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__time_cost=2,
    argon2__memory_cost=102400,
    argon2__parallelism=8
)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognized or malformed hash
        return False


def is_recognized_hash(hashed_password: str) -> bool:
    return pwd_context.identify(hashed_password, required=False) is not None


# Argon2 is CPU and memory bound; keep it off the event loop.
async def hash_secret(value: str) -> str:
    return await run_in_threadpool(get_password_hash, value)


async def verify_secret(value: str, hashed: str) -> bool:
    return await run_in_threadpool(verify_password, value, hashed)
