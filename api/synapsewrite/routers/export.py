"""Export router: publish generated articles to WordPress."""

from fastapi import APIRouter, Depends, Request, status

from synapsewrite.config import settings
from synapsewrite.dependencies import Services, get_services
from synapsewrite.middleware.rate_limit import limiter
from synapsewrite.schemas.export import WordPressExportRequest, WordPressExportResponse

router = APIRouter(prefix="/api/v1/export", tags=["Export"])


@router.post(
    "/wordpress",
    response_model=WordPressExportResponse,
    status_code=status.HTTP_200_OK,
)
@limiter.limit(settings.export_rate_limit)
async def export_to_wordpress(
    request: Request,
    data: WordPressExportRequest,
    services: Services = Depends(get_services),
) -> WordPressExportResponse:
    """
    Create a WordPress draft from an article.

    The content must already be HTML. Returns the new post id and the
    admin edit link.
    """
    wordpress = services.wordpress
    post_id = await wordpress.create_draft(data.title, data.content)
    await services.events.send("export.wordpress", post_id=post_id)
    return WordPressExportResponse(post_id=post_id, edit_url=wordpress.edit_url(post_id))
