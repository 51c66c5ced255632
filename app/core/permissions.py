"""
Role-based permission classes shared by the API apps.

- IsClient: marketplace clients (and admins, who may act for them)
- IsFreelancer: freelancers only
- IsPlatformAdmin: admins by role or staff flag

Object-level rules (is this user a party to the order?) live in the
services, which raise PermissionDeniedError.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsClient(permissions.BasePermission):
    """Allows clients and platform admins."""

    message = "Only clients can perform this action."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        return bool(
            user
            and user.is_authenticated
            and (user.is_client or user.is_platform_admin)
        )


class IsFreelancer(permissions.BasePermission):
    message = "Only freelancers can perform this action."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and user.is_freelancer)


class IsPlatformAdmin(permissions.BasePermission):
    message = "Only platform admins can perform this action."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and user.is_platform_admin)
