"""
Site content model.

The content model is everything the renderer needs, already resolved:
synthesized sections, palette, media URLs and contact details. It is built
once per pass from the intake record and the outputs of earlier stages.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from apps.imaging.palette import DEFAULT_PALETTE, Palette

SOCIAL_NETWORKS = ("facebook", "instagram", "linkedin", "twitter", "youtube", "tiktok")


@dataclass(frozen=True)
class ServiceItem:
    title: str
    description: str = ""


@dataclass(frozen=True)
class Testimonial:
    quote: str
    author: str = ""
    role: str = ""


@dataclass(frozen=True)
class HeroSection:
    headline: str
    subheadline: str = ""
    cta_primary: str = "Get Started"
    cta_secondary: str = "Learn More"


@dataclass(frozen=True)
class AboutSection:
    headline: str
    paragraphs: tuple[str, ...] = ()


@dataclass(frozen=True)
class CallToAction:
    headline: str
    subheadline: str = ""
    button_text: str = "Contact Us"


@dataclass(frozen=True)
class MediaRef:
    url: str
    webp_url: str = ""
    thumbnail_url: str = ""
    width: int | None = None
    height: int | None = None


@dataclass(frozen=True)
class ContactInfo:
    email: str
    phone: str = ""
    address: str = ""
    # (network, url) pairs, sorted by network
    social: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class SiteContentModel:
    business_name: str
    hero: HeroSection
    about: AboutSection
    contact: ContactInfo
    cta: CallToAction
    palette: Palette = DEFAULT_PALETTE
    tagline: str = ""
    industry: str = ""
    services: tuple[ServiceItem, ...] = ()
    testimonials: tuple[Testimonial, ...] = ()
    logo: MediaRef | None = None
    hero_image: MediaRef | None = None
    gallery: tuple[MediaRef, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _media(ref: dict[str, Any]) -> MediaRef:
    return MediaRef(
        url=ref.get("url", ""),
        webp_url=ref.get("webp_url", ""),
        thumbnail_url=ref.get("thumbnail_url", ""),
        width=ref.get("width"),
        height=ref.get("height"),
    )


def _social_links(raw: Any) -> tuple[tuple[str, str], ...]:
    if not isinstance(raw, dict):
        return ()
    links = []
    for network in sorted(raw):
        url = _text(raw[network])
        if network in SOCIAL_NETWORKS and url.startswith(("http://", "https://")):
            links.append((network, url))
    return tuple(links)


def build_content_model(
    business_payload: dict[str, Any],
    content: dict[str, Any],
    *,
    contact_email: str,
    palette: Palette | None = None,
    assets: list[dict[str, Any]] | None = None,
) -> SiteContentModel:
    """
    Assemble the renderer input.

    Args:
        business_payload: The intake record's business details.
        content: Synthesized content (hero, about, services, testimonials, cta).
        contact_email: Record contact address.
        palette: Resolved palette; the default palette when omitted.
        assets: Optimized asset references (``IntakeRecord.derived_assets``).
    """
    payload = business_payload or {}
    hero = content.get("hero") or {}
    about = content.get("about") or {}
    cta = content.get("cta") or {}
    business_name = _text(payload.get("business_name"))

    logo = hero_image = None
    gallery = []
    for ref in sorted(assets or [], key=lambda r: (r.get("purpose", ""), r.get("position", 0))):
        if ref.get("purpose") == "logo" and logo is None:
            logo = _media(ref)
        elif ref.get("purpose") == "hero" and hero_image is None:
            hero_image = _media(ref)
        elif ref.get("purpose") == "gallery":
            gallery.append(_media(ref))

    return SiteContentModel(
        business_name=business_name,
        tagline=_text(payload.get("tagline")),
        industry=_text(payload.get("industry")),
        hero=HeroSection(
            headline=_text(hero.get("headline")) or business_name,
            subheadline=_text(hero.get("subheadline")),
            cta_primary=_text(hero.get("cta_primary")) or "Get Started",
            cta_secondary=_text(hero.get("cta_secondary")) or "Learn More",
        ),
        about=AboutSection(
            headline=_text(about.get("headline")) or f"About {business_name}",
            paragraphs=tuple(_text(p) for p in about.get("paragraphs") or [] if _text(p)),
        ),
        services=tuple(
            ServiceItem(title=_text(s.get("title")), description=_text(s.get("description")))
            for s in content.get("services") or []
            if isinstance(s, dict) and _text(s.get("title"))
        ),
        testimonials=tuple(
            Testimonial(
                quote=_text(t.get("quote")),
                author=_text(t.get("author")),
                role=_text(t.get("role")),
            )
            for t in content.get("testimonials") or []
            if isinstance(t, dict) and _text(t.get("quote"))
        ),
        cta=CallToAction(
            headline=_text(cta.get("headline")) or "Ready to get started?",
            subheadline=_text(cta.get("subheadline")),
            button_text=_text(cta.get("button_text")) or "Contact Us",
        ),
        palette=palette or DEFAULT_PALETTE,
        contact=ContactInfo(
            email=contact_email,
            phone=_text(payload.get("phone")),
            address=_text(payload.get("address")),
            social=_social_links(payload.get("social_links")),
        ),
        logo=logo,
        hero_image=hero_image,
        gallery=tuple(gallery),
    )
