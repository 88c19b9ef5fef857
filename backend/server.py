from fastapi import FastAPI, APIRouter
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
import os
import logging
from pathlib import Path

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

from bootstrap import run_bootstrap  # noqa: E402
from routers.auth_google import router as auth_router  # noqa: E402
from routers.csv_admin import router as csv_admin_router  # noqa: E402
from routers.email_admin import router as email_admin_router  # noqa: E402
from routers.profiles_admin import router as profiles_admin_router  # noqa: E402
from routers.public import router as public_router  # noqa: E402
from routers.registration import router as registration_router  # noqa: E402
from routers.users_admin import router as users_admin_router  # noqa: E402

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

app = FastAPI(title="Snehband Pandharpur 2025 API", version="1.0.0")
api_router = APIRouter(prefix="/api")

api_router.include_router(public_router)
api_router.include_router(auth_router)
api_router.include_router(registration_router)
api_router.include_router(profiles_admin_router)
api_router.include_router(csv_admin_router)
api_router.include_router(email_admin_router)
api_router.include_router(users_admin_router)


@app.on_event("startup")
def startup_event():
    run_bootstrap()
    logger.info("Snehband API ready")


# Include router and add middleware
app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)
