"""CRUD services for catalog collections.

Each service validates request bodies with its Pydantic model, stores the
JSON-mode dump through a :class:`DocumentRepository`, and translates missing
documents into :class:`ResourceNotFoundError`. Localised text fields are merged
per locale on update so that editing one translation leaves the others intact.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError

from storefront.backend.app.models.catalog import (
    CatalogDocument,
    CatalogStatusUpdate,
    CategoryInput,
    CouponInput,
    ExtraInput,
)

from .catalog_repository import DocumentRepository
from .errors import (
    FieldViolation,
    InvalidResourceError,
    ResourceNotFoundError,
    ValidationFailedError,
)
from .profit_grid.utils import violations_from_error

logger = logging.getLogger(__name__)


def slugify(value: str) -> str:
    """Return a lowercase, hyphenated ASCII slug for ``value``."""

    decomposed = unicodedata.normalize("NFKD", str(value))
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    slug = stripped.strip().lower()
    slug = re.sub(r"[^a-z0-9 -]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    return re.sub(r"-+", "-", slug)


def default_translation(text: Mapping[str, str] | None, locale: str = "en") -> str:
    """Pick ``locale`` from a localised mapping, falling back to the first entry."""

    if not text:
        return ""
    if text.get(locale):
        return text[locale]
    return next((value for value in text.values() if value), "")


class CatalogService:
    """Generic CRUD over one catalog collection."""

    collection: ClassVar[str]
    resource: ClassVar[str]
    model: ClassVar[type[BaseModel]]
    localized_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self, repository: DocumentRepository) -> None:
        self._repository = repository

    # -- validation hooks ------------------------------------------------

    def _parse(self, payload: Mapping[str, Any], *, prefix: str = "") -> dict[str, Any]:
        if not isinstance(payload, Mapping):
            raise ValidationFailedError(
                [FieldViolation(field=prefix or "__root__", reason="must be an object")]
            )
        try:
            model = self.model.model_validate(dict(payload))
        except ValidationError as error:
            violations = violations_from_error(error)
            if prefix:
                violations = [
                    FieldViolation(field=f"{prefix}.{item.field}", reason=item.reason)
                    for item in violations
                ]
            raise ValidationFailedError(violations) from error
        return model.model_dump(mode="json")

    def _check(
        self,
        data: dict[str, Any],
        *,
        current_id: str | None = None,
        pending: Sequence[Mapping[str, Any]] = (),
    ) -> list[FieldViolation]:
        """Cross-document rules; subclasses add their own."""

        return []

    def _prepare(
        self,
        payload: Mapping[str, Any],
        *,
        current_id: str | None = None,
        pending: Sequence[Mapping[str, Any]] = (),
        prefix: str = "",
    ) -> dict[str, Any]:
        data = self._parse(payload, prefix=prefix)
        violations = self._check(data, current_id=current_id, pending=pending)
        if violations:
            if prefix:
                violations = [
                    FieldViolation(field=f"{prefix}.{item.field}", reason=item.reason)
                    for item in violations
                ]
            raise ValidationFailedError(violations)
        return data

    # -- reads -----------------------------------------------------------

    def index(self) -> list[CatalogDocument]:
        return self._repository.list(self.collection)

    def showing(self) -> list[CatalogDocument]:
        return self._repository.list(self.collection, where={"status": "show"})

    def show(self, document_id: str) -> CatalogDocument:
        try:
            return self._repository.get(self.collection, document_id)
        except KeyError:
            raise ResourceNotFoundError(self.resource, document_id) from None

    # -- writes ----------------------------------------------------------

    def store(self, payload: Mapping[str, Any]) -> CatalogDocument:
        data = self._prepare(payload)
        (document,) = self._repository.insert_many(self.collection, [data])
        logger.info("Created %s %s", self.resource.lower(), document.id)
        return document

    def store_many(self, payloads: Sequence[Mapping[str, Any]]) -> list[CatalogDocument]:
        """Validate every entry first; nothing is stored unless all are valid."""

        if not isinstance(payloads, Sequence) or isinstance(payloads, (str, bytes)):
            raise ValidationFailedError(
                [FieldViolation(field="__root__", reason="must be a list of objects")]
            )
        if not payloads:
            raise ValidationFailedError(
                [FieldViolation(field="__root__", reason="at least one entry is required")]
            )

        prepared: list[dict[str, Any]] = []
        violations: list[FieldViolation] = []
        for index, payload in enumerate(payloads):
            try:
                prepared.append(
                    self._prepare(payload, pending=prepared, prefix=str(index))
                )
            except ValidationFailedError as error:
                violations.extend(error.violations)
        if violations:
            raise ValidationFailedError(violations)

        documents = self._repository.insert_many(self.collection, prepared)
        logger.info("Created %s %s documents", len(documents), self.collection)
        return documents

    def _merge_localized(
        self, current: CatalogDocument, payload: Mapping[str, Any]
    ) -> dict[str, Any]:
        merged = dict(payload)
        for field in self.localized_fields:
            existing = current.get(field)
            incoming = payload.get(field)
            if isinstance(existing, Mapping) and isinstance(incoming, Mapping):
                merged[field] = {**existing, **incoming}
            elif field not in payload and existing is not None:
                merged[field] = existing
        merged.setdefault("status", current.get("status"))
        return merged

    def update(self, document_id: str, payload: Mapping[str, Any]) -> CatalogDocument:
        """Replace the document from ``payload``, merging translations per locale."""

        current = self.show(document_id)
        if not isinstance(payload, Mapping):
            raise ValidationFailedError(
                [FieldViolation(field="__root__", reason="must be an object")]
            )
        data = self._prepare(self._merge_localized(current, payload), current_id=document_id)
        try:
            document = self._repository.replace(self.collection, document_id, data)
        except KeyError:
            raise ResourceNotFoundError(self.resource, document_id) from None
        logger.info("Updated %s %s", self.resource.lower(), document_id)
        return document

    def update_status(self, document_id: str, payload: Mapping[str, Any]) -> CatalogDocument:
        current = self.show(document_id)
        try:
            request = CatalogStatusUpdate.model_validate(dict(payload))
        except ValidationError as error:
            raise ValidationFailedError(violations_from_error(error)) from error

        data = dict(current.data)
        data["status"] = request.status
        try:
            document = self._repository.replace(self.collection, document_id, data)
        except KeyError:
            raise ResourceNotFoundError(self.resource, document_id) from None
        logger.info("%s %s is now %s", self.resource, document_id, request.status)
        return document

    def delete(self, document_id: str) -> CatalogDocument:
        try:
            document = self._repository.delete(self.collection, document_id)
        except KeyError:
            raise ResourceNotFoundError(self.resource, document_id) from None
        logger.info("Deleted %s %s", self.resource.lower(), document_id)
        return document

    def delete_many(self, document_ids: Iterable[str]) -> int:
        identifiers = list(document_ids)
        if not identifiers:
            raise InvalidResourceError("At least one identifier is required")
        deleted = self._repository.delete_many(self.collection, identifiers)
        logger.info(
            "Deleted %s of %s requested %s", deleted, len(identifiers), self.collection
        )
        return deleted


class CouponService(CatalogService):
    collection = "coupons"
    resource = "Coupon"
    model = CouponInput
    localized_fields = ("title",)

    def _check(
        self,
        data: dict[str, Any],
        *,
        current_id: str | None = None,
        pending: Sequence[Mapping[str, Any]] = (),
    ) -> list[FieldViolation]:
        code = str(data["coupon_code"]).lower()
        clashes = [
            document
            for document in self._repository.list(self.collection)
            if document.id != current_id and str(document.get("coupon_code", "")).lower() == code
        ]
        duplicated = any(str(item.get("coupon_code", "")).lower() == code for item in pending)
        if clashes or duplicated:
            return [
                FieldViolation(
                    field="coupon_code",
                    reason=f"coupon code '{data['coupon_code']}' is already in use",
                )
            ]
        return []

    def show_by_code(self, coupon_code: str) -> CatalogDocument:
        """Return the showing coupon whose code matches ``coupon_code`` (case-insensitive)."""

        code = coupon_code.strip().lower()
        for document in self.showing():
            if str(document.get("coupon_code", "")).lower() == code:
                return document
        raise ResourceNotFoundError(self.resource, coupon_code)


class ExtraService(CatalogService):
    collection = "extras"
    resource = "Extra"
    model = ExtraInput
    localized_fields = ("title", "name", "description")


class CategoryService(CatalogService):
    collection = "categories"
    resource = "Category"
    model = CategoryInput
    localized_fields = ("name", "description")

    def _merge_localized(
        self, current: CatalogDocument, payload: Mapping[str, Any]
    ) -> dict[str, Any]:
        merged = super()._merge_localized(current, payload)
        if not merged.get("slug"):
            merged["slug"] = current.get("slug")
        return merged

    def _check(
        self,
        data: dict[str, Any],
        *,
        current_id: str | None = None,
        pending: Sequence[Mapping[str, Any]] = (),
    ) -> list[FieldViolation]:
        if not data.get("slug"):
            data["slug"] = slugify(default_translation(data.get("name")))

        parent_id = data.get("parent_id")
        if parent_id is None:
            return []
        if parent_id == current_id:
            return [FieldViolation(field="parent_id", reason="a category cannot be its own parent")]

        parents = {document.id: document for document in self._repository.list(self.collection)}
        if parent_id not in parents:
            return [FieldViolation(field="parent_id", reason=f"unknown parent category '{parent_id}'")]

        if current_id is not None:
            seen: set[str] = set()
            ancestor: str | None = parent_id
            while ancestor is not None and ancestor not in seen:
                if ancestor == current_id:
                    return [
                        FieldViolation(
                            field="parent_id",
                            reason="moving the category under its own descendant creates a cycle",
                        )
                    ]
                seen.add(ancestor)
                parent = parents.get(ancestor)
                ancestor = parent.get("parent_id") if parent is not None else None
        return []

    @staticmethod
    def build_tree(
        documents: Sequence[CatalogDocument], parent_id: str | None = None
    ) -> list[dict[str, Any]]:
        """Nest ``documents`` under their parents, starting from ``parent_id``."""

        children_by_parent: dict[str | None, list[CatalogDocument]] = {}
        for document in documents:
            children_by_parent.setdefault(document.get("parent_id"), []).append(document)

        def _branch(node_id: str | None, trail: frozenset[str]) -> list[dict[str, Any]]:
            nodes: list[dict[str, Any]] = []
            siblings = sorted(
                children_by_parent.get(node_id, []),
                key=lambda item: (item.get("position", 0), item.created_at),
            )
            for document in siblings:
                if document.id in trail:
                    continue
                node = document.as_dict()
                node["children"] = _branch(document.id, trail | {document.id})
                nodes.append(node)
            return nodes

        return _branch(parent_id, frozenset())

    def tree(self) -> list[dict[str, Any]]:
        return self.build_tree(self.index())

    def showing_tree(self) -> list[dict[str, Any]]:
        return self.build_tree(self.showing())

    def delete_many(self, document_ids: Iterable[str]) -> int:
        """Delete the given categories and their direct children."""

        identifiers = list(document_ids)
        if not identifiers:
            raise InvalidResourceError("At least one identifier is required")
        targets = set(identifiers)
        children = [
            document.id
            for document in self._repository.list(self.collection)
            if document.get("parent_id") in targets
        ]
        deleted = self._repository.delete_many(self.collection, [*identifiers, *children])
        logger.info(
            "Deleted %s categories (%s requested, %s children)",
            deleted,
            len(identifiers),
            len(children),
        )
        return deleted


__all__ = [
    "CatalogService",
    "CategoryService",
    "CouponService",
    "ExtraService",
    "default_translation",
    "slugify",
]
