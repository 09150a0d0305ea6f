"""
Content Store - CouchDB Design Documents

Every access pattern other than get-by-id goes through one of these views.

Key conventions:
- Filtered views emit ``[filter_value, created_at]`` so a key range over one
  filter value comes back in creation order.
- Search views emit one row per token, using the same rule as
  ``core.identifiers.search_tokens`` (lowercase, split on non ``[a-z0-9]``,
  length >= 2, deduplicated).
- Category/tag views emit the slug derived exactly like
  ``core.identifiers.slugify_name``.
"""
import logging
from typing import Any, Dict

from db.couchdb import CouchDBClient


logger = logging.getLogger("contentstore.db.couchdb")

# Document ``type`` discriminators.
PAGE_TYPE = "page"
BLOG_POST_TYPE = "blog_post"
MEDIA_TYPE = "media"
USER_TYPE = "user"
CONTACT_TYPE = "contact_submission"

# Upper bound for prefix range queries.
HIGH_KEY_SUFFIX = "\ufff0"

_TOKENS_JS = """
  var tokens = function (text) {
    var seen = {};
    var out = [];
    var parts = String(text || '').toLowerCase().split(/[^a-z0-9]+/);
    for (var i = 0; i < parts.length; i++) {
      var t = parts[i];
      if (t.length > 1 && !seen[t]) { seen[t] = true; out.push(t); }
    }
    return out;
  };
"""

_SLUG_JS = """
  var slug = function (name) {
    return String(name).trim().toLowerCase().replace(/\\s+/g, '-');
  };
"""


def _by_created(doc_type: str) -> Dict[str, str]:
    return {
        "map": (
            "function (doc) {\n"
            f"  if (doc.type === '{doc_type}') {{ emit(doc.created_at, null); }}\n"
            "}"
        )
    }


def _by_field(doc_type: str, name: str) -> Dict[str, str]:
    return {
        "map": (
            "function (doc) {\n"
            f"  if (doc.type === '{doc_type}' && doc.{name} != null) {{\n"
            f"    emit([doc.{name}, doc.created_at], null);\n"
            "  }\n"
            "}"
        )
    }


def _unique(doc_type: str, name: str) -> Dict[str, str]:
    return {
        "map": (
            "function (doc) {\n"
            f"  if (doc.type === '{doc_type}') {{ emit(doc.{name}, null); }}\n"
            "}"
        )
    }


def _by_term(doc_type: str, name: str) -> Dict[str, str]:
    return {
        "map": (
            "function (doc) {\n"
            f"{_SLUG_JS}"
            f"  if (doc.type === '{doc_type}' && doc.{name}) {{\n"
            "    var done = {};\n"
            f"    for (var i = 0; i < doc.{name}.length; i++) {{\n"
            f"      var s = slug(doc.{name}[i]);\n"
            "      if (!done[s]) { done[s] = true; emit([s, doc.created_at], null); }\n"
            "    }\n"
            "  }\n"
            "}"
        )
    }


def _term_counts(doc_type: str, name: str) -> Dict[str, str]:
    return {
        "map": (
            "function (doc) {\n"
            f"  if (doc.type === '{doc_type}' && doc.status === 'published' && doc.{name}) {{\n"
            f"    for (var i = 0; i < doc.{name}.length; i++) {{ emit(doc.{name}[i], 1); }}\n"
            "  }\n"
            "}"
        ),
        "reduce": "_count",
    }


def _search(doc_type: str, collect_js: str) -> Dict[str, str]:
    return {
        "map": (
            "function (doc) {\n"
            f"{_TOKENS_JS}"
            f"  if (doc.type !== '{doc_type}') {{ return; }}\n"
            "  var text = [];\n"
            f"{collect_js}"
            "  var toks = tokens(text.join(' '));\n"
            "  for (var i = 0; i < toks.length; i++) { emit(toks[i], null); }\n"
            "}"
        )
    }


_CONTENT_TEXT_JS = """
  if (doc.content && doc.content.blocks) {
    for (var b = 0; b < doc.content.blocks.length; b++) {
      var data = doc.content.blocks[b].data || {};
      for (var k in data) {
        if (typeof data[k] === 'string') { text.push(data[k]); }
      }
    }
  }
"""

_META_TEXT_JS = """
  text.push(doc.title, doc.slug);
  if (doc.meta) { text.push(doc.meta.title, doc.meta.description); }
"""


DESIGN_DOCUMENTS: Dict[str, Dict[str, Any]] = {
    "pages": {
        "language": "javascript",
        "views": {
            "all": _by_created(PAGE_TYPE),
            "by_slug": _unique(PAGE_TYPE, "slug"),
            "by_status": _by_field(PAGE_TYPE, "status"),
            "search": _search(PAGE_TYPE, _META_TEXT_JS + _CONTENT_TEXT_JS),
        },
    },
    "blog_posts": {
        "language": "javascript",
        "views": {
            "all": _by_created(BLOG_POST_TYPE),
            "by_slug": _unique(BLOG_POST_TYPE, "slug"),
            "by_status": _by_field(BLOG_POST_TYPE, "status"),
            "by_author": _by_field(BLOG_POST_TYPE, "author"),
            "by_category": _by_term(BLOG_POST_TYPE, "categories"),
            "by_tag": _by_term(BLOG_POST_TYPE, "tags"),
            "published": {
                "map": (
                    "function (doc) {\n"
                    f"  if (doc.type === '{BLOG_POST_TYPE}' && doc.status === 'published'"
                    " && doc.published_at) {\n"
                    "    emit(doc.published_at, null);\n"
                    "  }\n"
                    "}"
                )
            },
            "categories": _term_counts(BLOG_POST_TYPE, "categories"),
            "tags": _term_counts(BLOG_POST_TYPE, "tags"),
            "search": _search(
                BLOG_POST_TYPE,
                _META_TEXT_JS
                + "  text.push(doc.excerpt);\n"
                + _CONTENT_TEXT_JS,
            ),
        },
    },
    "media": {
        "language": "javascript",
        "views": {
            "all": _by_created(MEDIA_TYPE),
            "by_filename": _unique(MEDIA_TYPE, "filename"),
            "by_uploader": _by_field(MEDIA_TYPE, "uploaded_by"),
        },
    },
    "users": {
        "language": "javascript",
        "views": {
            "all": _by_created(USER_TYPE),
            "by_email": _unique(USER_TYPE, "email"),
            "by_role": _by_field(USER_TYPE, "role"),
        },
    },
    "contact_submissions": {
        "language": "javascript",
        "views": {
            "all": _by_created(CONTACT_TYPE),
            "by_status": _by_field(CONTACT_TYPE, "status"),
            "by_email": _by_field(CONTACT_TYPE, "email"),
            "search": _search(
                CONTACT_TYPE,
                "  text.push(doc.name, doc.email, doc.company, doc.message);\n",
            ),
        },
    },
}


async def setup_views(client: CouchDBClient) -> int:
    """Install every design document. Safe to run repeatedly."""
    for name, design in DESIGN_DOCUMENTS.items():
        await client.create_design_document(name, design)
    logger.info(f"Installed {len(DESIGN_DOCUMENTS)} design documents")
    return len(DESIGN_DOCUMENTS)
