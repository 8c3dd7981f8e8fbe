import os
from sqlalchemy import select
from cashlog.db.session import SessionLocal
from cashlog.core.security import create_access_token
from cashlog.models.category import Category
from cashlog.models.related_party import RelatedParty

DEFAULT_CATEGORIES = {
    "income": ["Penjualan", "Pendapatan Lain"],
    "expense": ["Bahan Baku", "Tenaga Kerja", "Overhead", "Operasional"],
}
DEFAULT_PARTIES = {
    "income": ["Pelanggan Umum"],
    "expense": ["Pemasok Umum"],
}

def seed_organization(s, org_id: str, user_id: str) -> int:
    added = 0
    for model, defaults in ((Category, DEFAULT_CATEGORIES), (RelatedParty, DEFAULT_PARTIES)):
        for tx_type, names in defaults.items():
            for name in names:
                exists = s.execute(
                    select(model.id).where(model.organization_id == org_id, model.type == tx_type, model.name == name)
                ).first()
                if exists:
                    continue
                s.add(model(name=name, type=tx_type, organization_id=org_id, user_id=user_id))
                added += 1
    s.commit()
    return added

def main():
    org_id = os.environ.get("SEED_ORG_ID", "org_dev")
    user_id = os.environ.get("SEED_USER_ID", "user_dev")

    db = SessionLocal()
    try:
        seed_organization(db, org_id, user_id)
    finally:
        db.close()

    print(create_access_token(user_id, org_id, org_name=os.environ.get("SEED_ORG_NAME")))

if __name__ == "__main__":
    main()
