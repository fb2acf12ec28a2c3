from sqlalchemy.orm import Session

from frontdesk.db.models import AppSetting


def get_setting(db: Session, key: str, default: str | None = None) -> str | None:
    row = db.get(AppSetting, key)
    if not row or row.value is None:
        return default
    return row.value


def set_setting(db: Session, key: str, value: str | None, commit: bool = True) -> None:
    row = db.get(AppSetting, key)
    if value is None:
        if row:
            db.delete(row)
    elif row:
        row.value = value
    else:
        db.add(AppSetting(key=key, value=value))
    if commit:
        db.commit()


def set_settings(db: Session, values: dict[str, str | None]) -> None:
    for key, value in values.items():
        set_setting(db, key, value, commit=False)
    db.commit()
