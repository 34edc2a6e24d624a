"""
Collaboration API

Group chat, meetings, task board, shared files and weekly progress. The five
record types share one access model, so their routes are registered from
COLLABORATION_SCHEMAS:

    GET|POST      /groups/{group_id}/{kind}
    PATCH|DELETE  /{kind}/{record_id}
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from thesishub.api.deps import get_current_principal
from thesishub.core.database import get_db
from thesishub.core.logging_config import set_group_id
from thesishub.schemas.collaboration import COLLABORATION_SCHEMAS
from thesishub.services.access import Principal
from thesishub.services.collaboration_service import CollaborationService

router = APIRouter()

SINGULAR_NAMES = {
    "messages": "message",
    "meetings": "meeting",
    "tasks": "task",
    "files": "file",
    "progress": "progress",
}


def register_routes(kind: str) -> None:
    create_schema, update_schema, response_schema = COLLABORATION_SCHEMAS[kind]
    singular = SINGULAR_NAMES[kind]

    async def list_records(
        group_id: str,
        principal: Principal = Depends(get_current_principal),
        db: AsyncSession = Depends(get_db)
    ):
        set_group_id(group_id)
        records = await CollaborationService(db).list_records(kind, group_id, principal)
        return {
            "success": True,
            "count": len(records),
            kind: [response_schema.model_validate(r) for r in records],
        }

    async def create_record(
        group_id: str,
        data: create_schema,
        principal: Principal = Depends(get_current_principal),
        db: AsyncSession = Depends(get_db)
    ):
        set_group_id(group_id)
        record = await CollaborationService(db).create_record(
            kind, group_id, data.model_dump(exclude_none=True), principal
        )
        return {
            "success": True,
            "message": f"{singular.capitalize()} created",
            singular: response_schema.model_validate(record),
        }

    async def update_record(
        record_id: str,
        data: update_schema,
        principal: Principal = Depends(get_current_principal),
        db: AsyncSession = Depends(get_db)
    ):
        record = await CollaborationService(db).update_record(
            kind, record_id, data.model_dump(exclude_unset=True), principal
        )
        return {
            "success": True,
            "message": f"{singular.capitalize()} updated",
            singular: response_schema.model_validate(record),
        }

    async def delete_record(
        record_id: str,
        principal: Principal = Depends(get_current_principal),
        db: AsyncSession = Depends(get_db)
    ):
        await CollaborationService(db).delete_record(kind, record_id, principal)
        return {"success": True, "message": f"{singular.capitalize()} deleted"}

    router.add_api_route(f"/groups/{{group_id}}/{kind}", list_records, methods=["GET"],
                         name=f"list_{kind}")
    router.add_api_route(f"/groups/{{group_id}}/{kind}", create_record, methods=["POST"],
                         status_code=status.HTTP_201_CREATED, name=f"create_{singular}")
    router.add_api_route(f"/{kind}/{{record_id}}", update_record, methods=["PATCH"],
                         name=f"update_{singular}")
    router.add_api_route(f"/{kind}/{{record_id}}", delete_record, methods=["DELETE"],
                         name=f"delete_{singular}")


for _kind in COLLABORATION_SCHEMAS:
    register_routes(_kind)
