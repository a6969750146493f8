from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import crud
from dependencies import get_db, require_admin
from models import NotificationTemplate, NotificationTemplateIn, NotificationTemplateUpdate

router = APIRouter(
    prefix="/api/notification-templates",
    tags=["notification-templates"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=list[NotificationTemplate])
def list_templates_api(db: Session = Depends(get_db)):
    return crud.list_templates(db)


@router.post("", response_model=NotificationTemplate, status_code=201)
def create_template_api(body: NotificationTemplateIn, db: Session = Depends(get_db)):
    return crud.create_template(db, body)


@router.get("/{template_id}", response_model=NotificationTemplate)
def get_template_api(template_id: str, db: Session = Depends(get_db)):
    template = crud.get_template(db, template_id)
    if not template:
        raise HTTPException(status_code=404, detail="template not found")
    return template


@router.patch("/{template_id}", response_model=NotificationTemplate)
def update_template_api(template_id: str, body: NotificationTemplateUpdate, db: Session = Depends(get_db)):
    updated = crud.update_template(db, template_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="template not found")
    return updated


@router.delete("/{template_id}", status_code=204)
def delete_template_api(template_id: str, db: Session = Depends(get_db)):
    if not crud.delete_template(db, template_id):
        raise HTTPException(status_code=404, detail="template not found")
    return None
