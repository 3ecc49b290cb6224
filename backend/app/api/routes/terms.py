from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import ADMIN_ONLY, get_db, get_scope, require_roles
from app.core.security import Actor
from app.schemas.term import TermFinalizeOut
from app.services.scope import SchedulingScope
from app.services.term_finalization import finalize_term

router = APIRouter()


@router.post("/{term_id}/finalize", response_model=TermFinalizeOut)
def finalize(
    term_id: str,
    db: Session = Depends(get_db),
    scope: SchedulingScope = Depends(get_scope),
    current_actor: Actor = Depends(require_roles(*ADMIN_ONLY)),
) -> TermFinalizeOut:
    return TermFinalizeOut.model_validate(finalize_term(db, scope, current_actor, term_id))
