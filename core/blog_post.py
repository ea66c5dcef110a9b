import json
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

CATEGORIES = ("ai", "blockchain", "technology", "business")


def ts_string(value: Any) -> str:
    """Quote a value as a TypeScript/YAML-safe double-quoted string literal."""
    return json.dumps("" if value is None else str(value), ensure_ascii=False)


@dataclass
class BlogPost:
    """One entry of the exported ``blogPosts`` array."""

    id: str
    slug: str
    title: str
    excerpt: str
    date: str
    publishedAt: str
    readTime: str
    category: str
    coverImage: str
    featured: bool = False
    author: str = ""
    authorImage: str = ""

    def to_ts_literal(self, indent: str = "  ") -> str:
        inner = indent * 2
        lines = [f"{indent}{{"]
        for item in fields(self):
            value = getattr(self, item.name)
            rendered = ("true" if value else "false") if isinstance(value, bool) else ts_string(value)
            lines.append(f"{inner}{item.name}: {rendered},")
        lines[-1] = lines[-1].rstrip(",")
        lines.append(f"{indent}}}")
        return "\n".join(lines)


@dataclass
class GenerationResult:
    """What the article generation endpoint returned, plus local bookkeeping."""

    title: str
    content: str
    slug: str
    id: str
    image_url: Optional[str] = None
    keywords: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "slug": self.slug,
            "imageUrl": self.image_url,
            "keywords": list(self.keywords),
        }
