from fastapi import APIRouter

from refugio.api.v1.categories import router as categories_router
from refugio.api.v1.content import blog_posts_router, ministries_router, sermons_router
from refugio.api.v1.events import router as events_router
from refugio.api.v1.interactions import router as interactions_router
from refugio.api.v1.me import router as me_router
from refugio.api.v1.stats import router as stats_router

router = APIRouter()
router.include_router(events_router)
router.include_router(sermons_router)
router.include_router(blog_posts_router)
router.include_router(ministries_router)
router.include_router(categories_router)
router.include_router(interactions_router)
router.include_router(me_router)
router.include_router(stats_router)
