"""
Seed the services table with the default catalogue

Run with: python -m migrations.seed_services
"""

import sys
from pathlib import Path

# Ensure this script can be run directly from the repo root
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from xaosao.catalogue import seed_services
from xaosao.database import Base, engine, session_scope
from xaosao.models import Service


def main():
    """Main execution function"""
    print("=" * 60)
    print("Service Catalogue Seed Script")
    print("=" * 60)

    Base.metadata.create_all(bind=engine, checkfirst=True)
    try:
        with session_scope() as db:
            summary = seed_services(db)
            print(f"\n✅ SUCCESS: {summary['created']} created, {summary['updated']} updated")
            print("\n📋 Current services:")
            for service in db.query(Service).order_by(Service.order.asc()).all():
                print(f"   {service.order}. {service.name} ({service.billing_type}) - commission {service.commission}%")
    except Exception as e:
        print(f"\n❌ ERROR: {e}")
        raise


if __name__ == "__main__":
    main()
