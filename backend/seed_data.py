"""Seed database with the global checklist template and a demo organization."""
from offboardpro.database import Base, SessionLocal, engine
from offboardpro.models import Organization, Template, TemplateTask, User
from offboardpro.auth import get_password_hash
from offboardpro.use_cases.trials import start_trial
import uuid

STANDARD_TEMPLATE_ID = uuid.UUID('00000000-0000-0000-0000-000000000301')

# (task_name, department, due_date_offset, priority)
STANDARD_TASKS = [
    ("Schedule exit interview", "HR", -5, "Medium"),
    ("Collect company laptop and equipment", "IT", 0, "High"),
    ("Disable email and SSO accounts", "IT", 0, "High"),
    ("Revoke third-party app access", "IT", 0, "High"),
    ("Transfer file ownership and shared drives", "Manager", -2, "Medium"),
    ("Knowledge transfer to team", "Manager", -7, "High"),
    ("Process final paycheck and unused PTO", "Finance", 3, "High"),
    ("Cancel company credit card", "Finance", 0, "Medium"),
    ("Update org chart and directory", "HR", 1, "Low"),
    ("Send exit survey", "HR", 1, "Low"),
]


def seed():
    """Seed database with demo data."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        if db.query(Template).filter(Template.id == STANDARD_TEMPLATE_ID).first():
            print("Database already seeded, nothing to do")
            return

        template = Template(
            id=STANDARD_TEMPLATE_ID,
            name="Standard Employee Offboarding",
            description="Default checklist covering equipment, access, payroll and knowledge transfer",
            organization_id=None,
            is_active=True,
        )
        db.add(template)
        for index, (task_name, department, offset, priority) in enumerate(STANDARD_TASKS):
            db.add(
                TemplateTask(
                    template_id=template.id,
                    task_name=task_name,
                    assigned_department=department,
                    due_date_offset=offset,
                    priority=priority,
                    order_index=index,
                )
            )

        org = Organization(
            id=uuid.UUID('00000000-0000-0000-0000-000000000001'),
            name="Demo Company",
        )
        db.add(org)
        db.flush()

        users_data = [
            {'email': 'admin@demo.offboardpro.com', 'password': 'admin12345', 'name': 'Demo Admin', 'role': 'admin'},
            {'email': 'hr@demo.offboardpro.com', 'password': 'hr12345678', 'name': 'Helen Hart', 'role': 'hr_manager'},
            {'email': 'it@demo.offboardpro.com', 'password': 'it12345678', 'name': 'Ivan Torres', 'role': 'it_manager'},
        ]
        for user_data in users_data:
            password = user_data.pop('password')
            user = User(
                organization_id=org.id,
                current_organization_id=org.id,
                password_hash=get_password_hash(password),
                is_active=True,
                **user_data
            )
            start_trial(user)
            db.add(user)

        org.subscription_plan = "professional"
        db.commit()
        print("✅ Database seeded successfully!")
        print("\nDemo users:")
        print("  admin@demo.offboardpro.com / admin12345 (Admin)")
        print("  hr@demo.offboardpro.com / hr12345678 (HR manager)")
        print("  it@demo.offboardpro.com / it12345678 (IT manager)")

    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
