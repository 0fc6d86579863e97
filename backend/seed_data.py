"""Seed database with the yard layout and a demo customer."""
from yardops.database import SessionLocal
from yardops.models import Area, Company, Rack, StorageRequest, Yard
from yardops.config import settings
from datetime import date, timedelta
import uuid

DEFAULT_LINEAR_RACK_JOINTS = 200

# Yard A rows are single-slot bays; yards B and C are length-counted racks.
YARD_LAYOUTS = [
    {
        'id': 'A',
        'name': 'Yard A (Open Storage)',
        'areas': [
            {'id': 'A1', 'name': 'Row 1 (West)', 'rack_count': 11, 'allocation_mode': 'SLOT',
             'capacity': 1, 'capacity_meters': 14.5, 'length_meters': 14.5, 'width_meters': 5, 'label': 'A1'},
            {'id': 'A2', 'name': 'Row 2 (East)', 'rack_count': 11, 'allocation_mode': 'SLOT',
             'capacity': 1, 'capacity_meters': 14.5, 'length_meters': 14.5, 'width_meters': 5, 'label': 'A2'},
        ],
    },
    {
        'id': 'B',
        'name': 'Yard B (Fenced Storage)',
        'areas': [
            {'id': area_id, 'name': name, 'rack_count': 9}
            for area_id, name in (('N', 'North'), ('E', 'East'), ('S', 'South'), ('W', 'West'), ('M', 'Middle'))
        ],
    },
    {
        'id': 'C',
        'name': 'Yard C (Cold Storage)',
        'areas': [
            {'id': area_id, 'name': name, 'rack_count': 9}
            for area_id, name in (('N', 'North'), ('E', 'East'), ('S', 'South'), ('W', 'West'), ('M', 'Middle'))
        ],
    },
]


def build_racks(yard_id: str, area: dict) -> list[Rack]:
    mode = area.get('allocation_mode', 'LINEAR')
    capacity = area.get('capacity', 1 if mode == 'SLOT' else DEFAULT_LINEAR_RACK_JOINTS)
    capacity_meters = area.get(
        'capacity_meters',
        capacity if mode == 'SLOT' else capacity * settings.DEFAULT_JOINT_LENGTH_M,
    )
    racks = []
    for slot in range(1, area['rack_count'] + 1):
        label = f"{area['label']}-{slot}" if area.get('label') else f"Rack {slot}"
        racks.append(
            Rack(
                id=f"{yard_id}-{area['id']}-{slot}",
                name=label,
                allocation_mode=mode,
                capacity=capacity,
                occupied=0,
                capacity_meters=capacity_meters,
                occupied_meters=0.0,
                length_meters=area.get('length_meters'),
                width_meters=area.get('width_meters'),
            )
        )
    return racks


def seed():
    """Seed database with demo data."""
    db = SessionLocal()

    try:
        if db.query(Yard).first():
            print("Yard layout already present, skipping seed")
            return

        for yard_config in YARD_LAYOUTS:
            yard = Yard(id=yard_config['id'], name=yard_config['name'])
            for area_config in yard_config['areas']:
                area = Area(
                    id=f"{yard_config['id']}-{area_config['id']}",
                    name=area_config['name'],
                )
                area.racks = build_racks(yard_config['id'], area_config)
                yard.areas.append(area)
            db.add(yard)

        company = Company(
            id=uuid.UUID('00000000-0000-0000-0000-000000000001'),
            name="Summit Drilling Co.",
            domain="summitdrilling.com",
        )
        db.add(company)
        db.flush()

        db.add(
            StorageRequest(
                reference_id="REQ-DEMO-001",
                company_id=company.id,
                user_email="logistics@summitdrilling.com",
                required_joints=150,
                avg_joint_length_m=12.0,
                storage_start_date=date.today() + timedelta(days=7),
                storage_end_date=date.today() + timedelta(days=180),
                status="PENDING",
                assigned_rack_ids=[],
            )
        )

        db.commit()
        print("✅ Seeded yards A/B/C, demo company and one pending request")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
