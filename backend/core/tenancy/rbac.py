from copy import deepcopy
from typing import Iterable

from django.conf import settings
from django.core.exceptions import ValidationError

ROLE_AGENCY_MANAGER = "AGENCY_MANAGER"
ROLE_SALES_AGENT = "SALES_AGENT"
ROLE_HR_MANAGER = "HR_MANAGER"

VALID_ROLES = frozenset((ROLE_AGENCY_MANAGER, ROLE_SALES_AGENT, ROLE_HR_MANAGER))
VALID_METHODS = frozenset(("GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE", "*"))

SELLING_ROLES = frozenset((ROLE_AGENCY_MANAGER, ROLE_SALES_AGENT))
NO_ROLES = frozenset()


def build_role_matrix(
    *,
    read_roles=SELLING_ROLES,
    post_roles=SELLING_ROLES,
    put_roles=SELLING_ROLES,
    patch_roles=SELLING_ROLES,
    delete_roles=NO_ROLES,
):
    return {
        "GET": frozenset(read_roles),
        "HEAD": frozenset(read_roles),
        "OPTIONS": frozenset(read_roles),
        "POST": frozenset(post_roles),
        "PUT": frozenset(put_roles),
        "PATCH": frozenset(patch_roles),
        "DELETE": frozenset(delete_roles),
    }


READ_ONLY_MATRIX = build_role_matrix(
    post_roles=NO_ROLES,
    put_roles=NO_ROLES,
    patch_roles=NO_ROLES,
)

DEFAULT_RESOURCE_ROLE_MATRICES = {
    "policies": build_role_matrix(),
    "policy_reminders": build_role_matrix(put_roles=NO_ROLES, patch_roles=NO_ROLES),
    "sales": build_role_matrix(),
    "sales_stats": READ_ONLY_MATRIX,
    "partners": READ_ONLY_MATRIX,
    "products": READ_ONLY_MATRIX,
}

DEFAULT_TENANT_ROLE_MATRIX = READ_ONLY_MATRIX
KNOWN_RBAC_RESOURCES = frozenset(DEFAULT_RESOURCE_ROLE_MATRICES.keys())


def _normalize_roles(raw_roles: Iterable[str]) -> frozenset[str]:
    if not isinstance(raw_roles, (list, tuple, set, frozenset)):
        return frozenset()
    normalized = {str(role).upper() for role in raw_roles}
    return frozenset(role for role in normalized if role in VALID_ROLES)


def validate_rbac_overrides_schema(overrides) -> None:
    if overrides in (None, {}):
        return

    if not isinstance(overrides, dict):
        raise ValidationError("rbac_overrides must be a JSON object (dictionary).")

    errors = {}
    for resource_key, method_map in overrides.items():
        resource_name = str(resource_key)
        resource_errors = []

        if resource_name not in KNOWN_RBAC_RESOURCES:
            resource_errors.append(
                f"Unknown resource '{resource_name}'. Allowed: {sorted(KNOWN_RBAC_RESOURCES)}"
            )

        if not isinstance(method_map, dict):
            resource_errors.append("Resource value must be an object of HTTP methods to role lists.")
            errors[resource_name] = resource_errors
            continue

        for method, raw_roles in method_map.items():
            method_name = str(method).upper()
            if method_name not in VALID_METHODS:
                resource_errors.append(
                    f"Method '{method_name}' is invalid. Allowed: {sorted(VALID_METHODS)}"
                )
                continue

            if not isinstance(raw_roles, list):
                resource_errors.append(f"Method '{method_name}' must contain a role list.")
                continue

            normalized_roles = _normalize_roles(raw_roles)
            if len(normalized_roles) != len(set(str(r).upper() for r in raw_roles)):
                resource_errors.append(
                    f"Method '{method_name}' contains invalid roles. "
                    f"Allowed roles: {sorted(VALID_ROLES)}"
                )

        if resource_errors:
            errors[resource_name] = resource_errors

    if errors:
        raise ValidationError(errors)


def _apply_overrides(matrices: dict, overrides: dict | None) -> dict:
    # An empty role list is a valid override: it closes the method.
    if not isinstance(overrides, dict):
        return matrices

    for resource_key, method_map in overrides.items():
        if not isinstance(method_map, dict):
            continue
        resource_matrix = matrices.setdefault(str(resource_key), {})
        for method, raw_roles in method_map.items():
            resource_matrix[str(method).upper()] = _normalize_roles(raw_roles)
    return matrices


def get_resource_role_matrices(company=None) -> dict:
    matrices = deepcopy(DEFAULT_RESOURCE_ROLE_MATRICES)

    global_overrides = getattr(settings, "TENANT_ROLE_MATRICES", {})
    try:
        validate_rbac_overrides_schema(global_overrides)
    except ValidationError:
        global_overrides = {}
    _apply_overrides(matrices, global_overrides)

    if company is not None:
        tenant_overrides = getattr(company, "rbac_overrides", {})
        try:
            validate_rbac_overrides_schema(tenant_overrides)
        except ValidationError:
            tenant_overrides = {}
        _apply_overrides(matrices, tenant_overrides)

    return matrices


def get_role_matrix_for_resource(resource_key: str, company=None) -> dict:
    matrices = get_resource_role_matrices(company=company)
    return matrices.get(resource_key, DEFAULT_TENANT_ROLE_MATRIX)


def role_can(role_matrix, role, method):
    allowed_roles = role_matrix.get(method, role_matrix.get("*", frozenset()))
    return role in allowed_roles
