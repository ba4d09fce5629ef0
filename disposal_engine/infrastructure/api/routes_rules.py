"""Assignment rule endpoints — CRUD and dry-run test."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from disposal_engine.application.use_cases.manage_rules import ManageRulesUseCase
from disposal_engine.domain.value_objects.actor import Actor
from disposal_engine.infrastructure.api.dependencies import get_actor, get_rules_uc
from disposal_engine.infrastructure.api.schemas import (
    RuleRequest,
    RuleUpdateRequest,
    serialize_rule,
)

router = APIRouter(prefix="/rules", tags=["rules"])


@router.get("")
async def list_rules(enabled_only: bool = False, uc: ManageRulesUseCase = Depends(get_rules_uc)):
    rules = await uc.list_rules(enabled_only=enabled_only)
    return {"total": len(rules), "rules": [serialize_rule(r) for r in rules]}


@router.post("", status_code=201)
async def create_rule(
    body: RuleRequest,
    uc: ManageRulesUseCase = Depends(get_rules_uc),
    actor: Actor = Depends(get_actor),
):
    rule = await uc.create(body.to_domain(), actor=actor)
    return serialize_rule(rule)


@router.get("/{rule_id}")
async def get_rule(rule_id: int, uc: ManageRulesUseCase = Depends(get_rules_uc)):
    return serialize_rule(await uc.get(rule_id))


@router.put("/{rule_id}")
async def update_rule(
    rule_id: int, body: RuleUpdateRequest, uc: ManageRulesUseCase = Depends(get_rules_uc)
):
    changes = body.model_dump(exclude_unset=True)
    version = changes.pop("version", None)
    rule = await uc.update(rule_id, changes, expected_version=version)
    return serialize_rule(rule)


@router.delete("/{rule_id}", status_code=204)
async def delete_rule(rule_id: int, uc: ManageRulesUseCase = Depends(get_rules_uc)):
    await uc.delete(rule_id)
    return Response(status_code=204)


@router.post("/{rule_id}/test")
async def test_rule(
    rule_id: int, package_id: int, uc: ManageRulesUseCase = Depends(get_rules_uc)
):
    """Evaluate a rule against a package without assigning anything."""
    result = await uc.test(rule_id, package_id)
    return {
        "rule_id": result.rule_id,
        "package_id": result.package_id,
        "rule_matched": result.rule_matched,
        "reasons": result.reasons,
        "matched_criteria": result.matched_criteria,
        "unmatched_criteria": result.unmatched_criteria,
    }
