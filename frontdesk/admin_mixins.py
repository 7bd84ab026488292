import logging

from django.db import transaction
from rest_framework.decorators import action
from rest_framework.response import Response

from .models import AuditLog

log = logging.getLogger("frontdesk")


def _remote_addr(request):
    fwd = request.META.get("HTTP_X_FORWARDED_FOR")
    if fwd:
        return fwd.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


class AuditLogMixin:
    """
    Writes an AuditLog row for every create, update and delete done through the API.
    """
    def _log(self, request, action, obj, changes=None):
        if not request.user.is_authenticated:
            return

        AuditLog.objects.create(
            actor=request.user,
            action=action,
            model_name=obj._meta.label,
            object_id=str(obj.pk),
            object_repr=str(obj)[:200],
            changes=changes or {},
            remote_addr=_remote_addr(request),
        )

    def perform_create(self, serializer):
        obj = serializer.save()
        self._log(self.request, "CREATE", obj, changes=serializer.data)

    def perform_update(self, serializer):
        changed = dict(serializer.validated_data)
        obj = serializer.save()
        self._log(self.request, "UPDATE", obj, changes={k: str(v) for k, v in changed.items()})

    def perform_destroy(self, instance):
        self._log(self.request, "DELETE", instance)
        instance.delete()


class BulkActionMixin:
    """
    Adds /bulk/ endpoint for mass actions.
    """
    # fields a bulk "update" may touch; empty means bulk update is not offered
    bulk_update_fields = ()

    @action(detail=False, methods=['post'], url_path='bulk')
    def bulk_action(self, request):
        """
        Payload: {
            "ids": [1, 2, 3],
            "action": "delete" | "update",
            "payload": {"status": "MAINTENANCE"}
        }
        """
        ids = request.data.get('ids', [])
        action = request.data.get('action')
        payload = request.data.get('payload', {}) or {}

        if not ids or not action:
            return Response({"error": "Missing ids or action"}, status=400)

        queryset = self.filter_queryset(self.get_queryset()).filter(id__in=ids)
        count = queryset.count()

        if action == "delete":
            with transaction.atomic():
                for obj in queryset:
                    AuditLog.objects.create(
                        actor=request.user,
                        action="DELETE",
                        model_name=obj._meta.label,
                        object_id=str(obj.pk),
                        object_repr=str(obj)[:200],
                        changes={"bulk": True},
                        remote_addr=_remote_addr(request),
                    )
                queryset.delete()
            log.info("bulk delete %s x%d by %s", queryset.model._meta.label, count, request.user)
            return Response({"message": f"Deleted {count} items"})

        elif action == "update":
            bad = sorted(set(payload) - set(self.bulk_update_fields))
            if not payload or bad:
                return Response({"error": f"Fields not allowed for bulk update: {', '.join(bad) or '-'}"},
                                status=400)
            with transaction.atomic():
                updated = queryset.update(**payload)
                AuditLog.objects.create(
                    actor=request.user,
                    action="BULK",
                    model_name=queryset.model._meta.label,
                    object_id="MULTIPLE",
                    changes={"ids": ids, "update": payload},
                    remote_addr=_remote_addr(request),
                )
            return Response({"message": f"Updated {updated} items"})

        return Response({"error": "Unknown action"}, status=400)
