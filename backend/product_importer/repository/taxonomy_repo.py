# attribute taxonomy / term repository

from __future__ import annotations
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from product_importer.db.model.taxonomy import AttributeTaxonomy, Term
from product_importer.utils.text import sanitize_title


def taxonomy_key(name: str) -> str:
    """Canonical taxonomy name for a display name: "Pack Size" -> "pack-size"."""
    return sanitize_title(name)


def attribute_taxonomy_id_by_name(db: Session, name: str) -> int:
    """返回全局属性 id；不是全局属性时返回 0。"""
    key = taxonomy_key(name)
    if not key:
        return 0
    found = db.execute(select(AttributeTaxonomy.id).where(AttributeTaxonomy.name == key)).scalar_one_or_none()
    return int(found or 0)


def attribute_taxonomy_name_by_id(db: Session, taxonomy_id: int) -> str:
    tax = db.get(AttributeTaxonomy, taxonomy_id) if taxonomy_id else None
    return tax.name if tax is not None else ""


def get_term_slug_by_name(db: Session, taxonomy: str, name: str) -> Optional[str]:
    if not taxonomy or name is None:
        return None
    return db.execute(
        select(Term.slug).where(Term.taxonomy == taxonomy, Term.name == str(name)).limit(1)
    ).scalar_one_or_none()



# ========= 建表数据（脚本 / 测试用）=========
def create_attribute_taxonomy(db: Session, label: str, name: Optional[str] = None) -> AttributeTaxonomy:
    tax = AttributeTaxonomy(name=name or taxonomy_key(label), label=label)
    db.add(tax)
    db.commit()
    db.refresh(tax)
    return tax


def create_term(db: Session, taxonomy: str, name: str, slug: Optional[str] = None) -> Term:
    term = Term(taxonomy=taxonomy, name=name, slug=slug or sanitize_title(name))
    db.add(term)
    db.commit()
    db.refresh(term)
    return term
