import datetime
import logging
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from app import dependencies as deps
from app.errors import (
    InvalidCredentials,
    PostNotFound,
    UpstreamFailure,
    ValidationFailure,
)
from app.routers.posts import read_uploads
from app.schemas.blog import ArticleCreate, PostUpdate, Section
from app.security import get_session_user, get_settings
from app.services.auth_service import AuthService
from app.services.contact_service import ContactService
from app.services.media_service import MediaStore
from app.services.posts_service import PostsService
from app.services.presentation import build_detail, build_preview
from app.settings import Settings, settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter(include_in_schema=False)

HOME_PREVIEW_COUNT = 3
STORAGE_ERROR = "No se pudo completar la operación. Inténtalo más tarde."
MAX_ARTICLE_SECTIONS = 20


def _login_redirect() -> RedirectResponse:
    return RedirectResponse("/login", status_code=303)


def _dashboard_redirect() -> RedirectResponse:
    return RedirectResponse("/dashboard", status_code=303)


@router.get("/")
def home(
    request: Request,
    service: PostsService = Depends(deps.get_posts_service),
    current_settings: Settings = Depends(get_settings),
):
    try:
        posts = service.list_posts()[:HOME_PREVIEW_COUNT]
    except UpstreamFailure:
        posts = []
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "title": "Inicio",
            "username": current_settings.SITE_OWNER,
            "previews": [build_preview(p) for p in posts],
        },
    )


@router.get("/blog")
def blog(request: Request, service: PostsService = Depends(deps.get_posts_service)):
    error = None
    try:
        previews = [build_preview(p) for p in service.list_posts()]
    except UpstreamFailure:
        previews = []
        error = "No se pudieron cargar las publicaciones."
    return templates.TemplateResponse(
        request,
        "blog.html",
        {"title": "Blog", "previews": previews, "error": error},
        status_code=500 if error else 200,
    )


@router.get("/blog/{post_id}")
def blog_post(
    request: Request,
    post_id: str,
    image: int = 0,
    service: PostsService = Depends(deps.get_posts_service),
):
    try:
        post = service.get_post(post_id)
    except PostNotFound:
        raise HTTPException(status_code=404, detail="Post not found")
    except UpstreamFailure:
        return templates.TemplateResponse(
            request,
            "blog.html",
            {"title": "Blog", "previews": [], "error": STORAGE_ERROR},
            status_code=500,
        )
    return templates.TemplateResponse(
        request,
        "post.html",
        {"title": post.title, "post": build_detail(post, image_index=image)},
    )


@router.get("/contacto")
def contact_page(request: Request):
    return templates.TemplateResponse(
        request, "contact.html", {"title": "Contacto", "sent": False, "error": None}
    )


@router.post("/contacto")
def contact_submit(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    message: str = Form(""),
    service: ContactService = Depends(deps.get_contact_service),
):
    try:
        service.send_message(name, email, message)
    except ValidationFailure:
        return templates.TemplateResponse(
            request,
            "contact.html",
            {"title": "Contacto", "sent": False, "error": "Completa todos los campos."},
            status_code=422,
        )
    except UpstreamFailure:
        return templates.TemplateResponse(
            request,
            "contact.html",
            {
                "title": "Contacto",
                "sent": False,
                "error": "Hubo un error al enviar el mensaje. Inténtalo más tarde.",
            },
            status_code=502,
        )
    return templates.TemplateResponse(
        request, "contact.html", {"title": "Contacto", "sent": True, "error": None}
    )


@router.get("/login")
def login_page(request: Request):
    return templates.TemplateResponse(
        request, "login.html", {"title": "Iniciar sesión", "error": None}
    )


@router.post("/login")
def login_submit(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    service: AuthService = Depends(deps.get_auth_service),
    current_settings: Settings = Depends(get_settings),
):
    try:
        token = service.login(username, password)
    except InvalidCredentials:
        return templates.TemplateResponse(
            request,
            "login.html",
            {"title": "Iniciar sesión", "error": "Usuario o contraseña incorrectos."},
            status_code=401,
        )
    except UpstreamFailure:
        return templates.TemplateResponse(
            request,
            "login.html",
            {"title": "Iniciar sesión", "error": STORAGE_ERROR},
            status_code=500,
        )

    response = _dashboard_redirect()
    response.set_cookie(
        current_settings.SESSION_COOKIE_NAME,
        token,
        max_age=current_settings.JWT_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get("/logout")
def logout(current_settings: Settings = Depends(get_settings)):
    response = _login_redirect()
    response.delete_cookie(current_settings.SESSION_COOKIE_NAME)
    return response


def _render_dashboard(
    request: Request,
    service: PostsService,
    user: str,
    sections: int = 1,
    error: Optional[str] = None,
    status_code: int = 200,
):
    try:
        posts = service.list_posts()
    except UpstreamFailure:
        posts = []
        error = error or "No se pudieron cargar los posts."
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "title": "Dashboard",
            "user": user,
            "posts": [(build_preview(p), build_detail(p)) for p in posts],
            "section_count": max(1, min(sections, MAX_ARTICLE_SECTIONS)),
            "error": error,
        },
        status_code=status_code,
    )


@router.get("/dashboard")
def dashboard(
    request: Request,
    sections: int = 1,
    user: Optional[str] = Depends(get_session_user),
    service: PostsService = Depends(deps.get_posts_service),
):
    if not user:
        return _login_redirect()
    return _render_dashboard(request, service, user, sections=sections)


@router.post("/dashboard/posts")
def dashboard_create_post(
    request: Request,
    title: str = Form(""),
    date: Optional[datetime.date] = Form(None),
    content: str = Form(""),
    images: Optional[List[UploadFile]] = File(None),
    user: Optional[str] = Depends(get_session_user),
    service: PostsService = Depends(deps.get_posts_service),
):
    if not user:
        return _login_redirect()
    try:
        if date is None:
            raise ValidationFailure("date is required")
        service.create_post(title, date, content, read_uploads(images))
    except ValidationFailure as e:
        return _render_dashboard(
            request, service, user, error=str(e), status_code=422
        )
    except UpstreamFailure:
        return _render_dashboard(
            request, service, user, error=STORAGE_ERROR, status_code=500
        )
    return _dashboard_redirect()


@router.post("/dashboard/articles")
async def dashboard_create_article(
    request: Request,
    user: Optional[str] = Depends(get_session_user),
    service: PostsService = Depends(deps.get_posts_service),
    media: MediaStore = Depends(deps.get_media_store),
):
    if not user:
        return _login_redirect()

    form = await request.form()
    try:
        count = min(int(form.get("section_count") or 0), MAX_ARTICLE_SECTIONS)
    except ValueError:
        count = 0

    try:
        # Section images go to the media store first, one at a time, then
        # the article is saved referencing their URLs.
        sections = []
        for index in range(count):
            image_url = None
            upload = form.get(f"section-{index}-image")
            if upload is not None and not isinstance(upload, str) and upload.filename:
                data = await upload.read(settings.MAX_UPLOAD_BYTES + 1)
                image_url = await run_in_threadpool(
                    media.store, data, upload.filename, upload.content_type
                )
            sections.append(
                Section(
                    subtitle=form.get(f"section-{index}-subtitle") or None,
                    content=form.get(f"section-{index}-content") or None,
                    image=image_url,
                )
            )
        article = ArticleCreate(
            title=form.get("title") or "",
            date=form.get("date") or None,
            sections=sections,
        )
        await run_in_threadpool(service.create_article, article)
    except (ValidationFailure, ValueError) as e:
        # pydantic's ValidationError is a ValueError
        return await run_in_threadpool(
            _render_dashboard,
            request,
            service,
            user,
            count or 1,
            str(e),
            422,
        )
    except UpstreamFailure:
        return await run_in_threadpool(
            _render_dashboard,
            request,
            service,
            user,
            count or 1,
            STORAGE_ERROR,
            500,
        )
    return _dashboard_redirect()


@router.get("/dashboard/posts/{post_id}/edit")
def edit_post_page(
    request: Request,
    post_id: str,
    user: Optional[str] = Depends(get_session_user),
    service: PostsService = Depends(deps.get_posts_service),
):
    if not user:
        return _login_redirect()
    try:
        post = service.get_post(post_id)
    except PostNotFound:
        return _dashboard_redirect()
    except UpstreamFailure:
        return _render_dashboard(
            request, service, user, error=STORAGE_ERROR, status_code=500
        )
    return templates.TemplateResponse(
        request,
        "edit_post.html",
        {"title": "Editar publicación", "post": post, "error": None},
    )


@router.post("/dashboard/posts/{post_id}/edit")
def edit_post_submit(
    request: Request,
    post_id: str,
    title: str = Form(""),
    content: Optional[str] = Form(None),
    user: Optional[str] = Depends(get_session_user),
    service: PostsService = Depends(deps.get_posts_service),
):
    if not user:
        return _login_redirect()
    try:
        service.update_post(post_id, PostUpdate(title=title, content=content))
    except PostNotFound:
        raise HTTPException(status_code=404, detail="Post not found")
    except UpstreamFailure:
        return _render_dashboard(
            request, service, user, error=STORAGE_ERROR, status_code=500
        )
    except (ValidationFailure, ValueError) as e:
        try:
            post = service.get_post(post_id)
        except PostNotFound:
            raise HTTPException(status_code=404, detail="Post not found")
        except UpstreamFailure:
            return _render_dashboard(
                request, service, user, error=STORAGE_ERROR, status_code=500
            )
        return templates.TemplateResponse(
            request,
            "edit_post.html",
            {"title": "Editar publicación", "post": post, "error": str(e)},
            status_code=422,
        )
    return _dashboard_redirect()


@router.post("/dashboard/posts/{post_id}/delete")
def delete_post_submit(
    request: Request,
    post_id: str,
    user: Optional[str] = Depends(get_session_user),
    service: PostsService = Depends(deps.get_posts_service),
):
    if not user:
        return _login_redirect()
    try:
        service.delete_post(post_id)
    except PostNotFound:
        logger.info(f"Delete requested for missing post {post_id}")
    except UpstreamFailure:
        return _render_dashboard(
            request, service, user, error=STORAGE_ERROR, status_code=500
        )
    return _dashboard_redirect()
