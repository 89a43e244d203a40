"""FastAPI application for the dashboard showcase catalog."""

from __future__ import annotations

from pathlib import Path
from typing import List, Literal

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from blurb_client import BlurbClient
from catalog_loader import CatalogError, Site, load_sites
from config import Settings
from facets import CatalogSession
from filters import SORT_KEYS, site_domain
from prefs_store import ROLES, PreferenceStore
from view import SORT_LABELS, FilterView

app = FastAPI(title="Dashboard Showcase")

settings = Settings.load()
FRONTEND_DIR = Path(__file__).resolve().parent / "frontend"


def load_session(path: str) -> CatalogSession:
    try:
        return CatalogSession.from_sites(load_sites(path))
    except CatalogError as exc:
        print(f"[WARN] Catalog unavailable, serving an empty catalog: {exc}")
        return CatalogSession.from_sites([])


SESSION = load_session(settings.sites_path)
blurb_client = BlurbClient(settings)
prefs = PreferenceStore(settings.prefs_path)


@app.on_event("startup")
async def generate_frontend_config() -> None:
    """Ensure frontend/config.js matches the current settings."""
    try:
        from scripts.gen_frontend_config import main as build_config
    except Exception as exc:  # pragma: no cover
        print(f"[WARN] Frontend config import failed: {exc}")
        return

    try:
        build_config(settings)
    except Exception as exc:  # pragma: no cover
        print(f"[WARN] Frontend config generation failed: {exc}")


if FRONTEND_DIR.exists():
    app.mount("/frontend", StaticFiles(directory=FRONTEND_DIR), name="frontend")
else:  # pragma: no cover - optional logging
    print(f"[WARN] Frontend directory missing: {FRONTEND_DIR}")


@app.get("/", include_in_schema=False)
def serve_frontend() -> FileResponse:
    index_path = FRONTEND_DIR / "index.html"
    if not index_path.exists():
        raise HTTPException(status_code=404, detail="Frontend UI is not available")
    return FileResponse(index_path)


class SiteOut(BaseModel):
    """Карточка каталога в том виде, в котором её рисует фронтенд."""

    title: str = Field(description="Название дашборда")
    url: str = Field(description="Ссылка на дашборд")
    domain: str = Field(description="Хост ссылки без www, в нижнем регистре")
    tags: List[str] = Field(description="Теги в исходном написании, минимум один")
    description: str = Field(default="", description="Описание из каталога")
    techniques: List[str] = Field(default_factory=list, description="Приёмы визуализации")


class FilterStateOut(BaseModel):
    query: str = Field(default="", description="Текст поиска после trim")
    selected_tags: List[str] = Field(default_factory=list, description="Нажатые чипы, не более 10")
    dropdown: str = Field(default="all", description="'all' или тег из словаря")
    sort: Literal["default", "title", "domain"] = Field(default="default")


class ActiveFilterOut(BaseModel):
    kind: Literal["query", "tag", "dropdown", "sort"]
    label: str
    value: str
    aria_label: str
    remaining_query: str = Field(description="Query string после удаления этого фильтра")


class ViewResponse(BaseModel):
    """Ответ с отфильтрованной и отсортированной выдачей."""

    state: FilterStateOut
    query_string: str = Field(description="Каноническая query string для ссылки")
    items: List[SiteOut] = Field(description="Видимые карточки в порядке показа")
    total: int
    visible: int
    hidden: int
    announcement: str = Field(description="Текст для live-region скринридера")
    summary: str
    indicator: str
    empty: bool = Field(description="Ничего не найдено, показать пустое состояние")
    has_active_filters: bool = Field(description="Показывать кнопку «Сбросить фильтры»")
    active_filters: List[ActiveFilterOut]


class FacetGroupOut(BaseModel):
    facet: str
    label: str
    tags: List[str]
    active_count: int
    placeholder: str


class OptionOut(BaseModel):
    value: str
    label: str


class FacetsResponse(BaseModel):
    total: int
    groups: List[FacetGroupOut]
    dropdown: List[OptionOut]
    sort: List[OptionOut]


class BlurbResponse(BaseModel):
    url: str
    text: str


class RoleRequest(BaseModel):
    role: str


class NotesRequest(BaseModel):
    text: str = ""


@app.get(
    "/healthz",
    summary="Проверка состояния сервиса",
    description="Простой health-check без дополнительных проверок",
)
def healthz() -> dict[str, bool]:
    return {"ok": True}


@app.get("/sites", response_model=List[SiteOut], summary="Весь каталог")
def list_sites() -> List[SiteOut]:
    return [_site_out(site) for site in SESSION.sites]


@app.get(
    "/facets",
    response_model=FacetsResponse,
    summary="Группы чипов и опции выпадающих списков",
    description=(
        "Теги каталога, разложенные по фасетам platform/use-case/audience/pattern/other. "
        "Параметры q/tags/filter/sort учитываются для счётчиков нажатых чипов."
    ),
)
def list_facets(request: Request) -> FacetsResponse:
    view = _view_for(request.url.query)
    try:
        return FacetsResponse(
            total=SESSION.total,
            groups=[
                FacetGroupOut(
                    facet=group.facet,
                    label=group.label,
                    tags=group.tags,
                    active_count=group.active_count,
                    placeholder=group.placeholder,
                )
                for group in view.facet_groups()
            ],
            dropdown=[OptionOut(value=v, label=l) for v, l in view.dropdown_options()],
            sort=[OptionOut(value=key, label=SORT_LABELS[key]) for key in SORT_KEYS],
        )
    finally:
        view.close()


@app.get(
    "/view",
    response_model=ViewResponse,
    summary="Выдача каталога по состоянию фильтров из ссылки",
    description=(
        "1) Разбираем q/tags/filter/sort (неизвестные параметры игнорируются).\n"
        "2) Валидируем по словарю тегов: лишнее молча отбрасывается, ошибок нет.\n"
        "3) Применяем предикат (поиск OR, выпадающий список, чипы AND) и сортировку.\n"
        "4) Возвращаем каноническую query string и чипы активных фильтров."
    ),
)
def filtered_view(request: Request) -> ViewResponse:
    view = _view_for(request.url.query)
    try:
        return _view_response(view)
    finally:
        view.close()


@app.get(
    "/view/remove",
    response_model=ViewResponse,
    summary="Снять один активный фильтр",
    description="Сбрасывает одну ось (query/tag/dropdown/sort) и пересчитывает выдачу.",
)
def remove_filter(
    request: Request,
    kind: Literal["query", "tag", "dropdown", "sort"] = Query(...),
    value: str = Query(""),
) -> ViewResponse:
    view = _view_for(request.url.query)
    try:
        view.remove_filter(kind, value)
        return _view_response(view)
    finally:
        view.close()


@app.get("/blurb", response_model=BlurbResponse, summary="Короткое описание страницы")
def get_blurb(url: str = Query(..., min_length=1)) -> BlurbResponse:
    return BlurbResponse(url=url, text=blurb_client.fetch_blurb(url))


@app.delete("/blurb/cache", summary="Очистить кэш описаний")
def clear_blurbs() -> dict[str, int]:
    return {"removed": blurb_client.clear_cache()}


@app.get("/blurb/cache", summary="Статистика кэша описаний")
def blurb_cache_info() -> dict[str, int]:
    return blurb_client.cache_info()


@app.get("/prefs/{client_id}", summary="Все настройки клиента")
def get_prefs(client_id: str) -> dict:
    return prefs.snapshot(client_id)


@app.get("/prefs/{client_id}/role")
def get_role(client_id: str) -> dict[str, str]:
    return {"role": prefs.get_role(client_id)}


@app.put("/prefs/{client_id}/role")
def put_role(client_id: str, payload: RoleRequest) -> dict[str, str]:
    if payload.role not in ROLES:
        raise HTTPException(status_code=422, detail=f"Unknown role: {payload.role}")
    return {"role": prefs.set_role(client_id, payload.role)}


@app.get("/prefs/{client_id}/onboarding")
def get_onboarding(client_id: str) -> dict[str, bool]:
    return {"seen": prefs.has_seen_onboarding(client_id)}


@app.post("/prefs/{client_id}/onboarding")
def mark_onboarding(client_id: str) -> dict[str, bool]:
    prefs.mark_onboarding_seen(client_id)
    return {"seen": True}


@app.delete("/prefs/{client_id}/onboarding")
def reset_onboarding(client_id: str) -> dict[str, bool]:
    prefs.reset_onboarding(client_id)
    return {"seen": False}


@app.get("/prefs/{client_id}/notes/{role}")
def get_notes(client_id: str, role: str) -> dict[str, str]:
    _require_role(role)
    return {"role": role, "text": prefs.get_notes(client_id, role)}


@app.put("/prefs/{client_id}/notes/{role}")
def put_notes(client_id: str, role: str, payload: NotesRequest) -> dict[str, str]:
    _require_role(role)
    prefs.save_notes(client_id, role, payload.text)
    return {"role": role, "text": payload.text}


def _require_role(role: str) -> None:
    if role not in ROLES:
        raise HTTPException(status_code=404, detail=f"Unknown role: {role}")


def _view_for(query_string: str) -> FilterView:
    view = FilterView(SESSION, debounce_sec=settings.search_debounce_sec)
    view.navigate(query_string)
    return view


def _site_out(site: Site) -> SiteOut:
    return SiteOut(
        title=site["title"],
        url=site["url"],
        domain=site_domain(site),
        tags=list(site["tags"]),
        description=site.get("description", ""),
        techniques=list(site.get("techniques", [])),
    )


def _view_response(view: FilterView) -> ViewResponse:
    state = view.current_state()
    result = view.result
    return ViewResponse(
        state=FilterStateOut(**state.to_dict()),
        query_string=view.url,
        items=[_site_out(site) for site in result.visible],
        total=result.total,
        visible=result.visible_count,
        hidden=result.hidden_count,
        announcement=result.announcement,
        summary=result.summary,
        indicator=result.indicator,
        empty=result.is_empty,
        has_active_filters=view.has_active_filters,
        active_filters=[ActiveFilterOut(**chip.to_dict()) for chip in view.tray],
    )
