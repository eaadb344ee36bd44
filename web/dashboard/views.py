import threading
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from trend_engine.main import build_scheduler
from trend_engine.scheduler import ScanScheduler, TriggerResult

_scheduler = None
_scheduler_lock = threading.Lock()


def get_scheduler() -> ScanScheduler:
    # one engine per process; its 24h timer starts with the first request
    global _scheduler
    with _scheduler_lock:
        if _scheduler is None:
            _scheduler = build_scheduler()
            _scheduler.start()
        return _scheduler


@require_GET
def api_trends(request):
    return JsonResponse(get_scheduler().snapshot())


@csrf_exempt
@require_POST
def api_trends_refresh(request):
    result = get_scheduler().trigger()

    if result is TriggerResult.BUSY:
        return JsonResponse({"status": "busy", "error": "A trend scan is already running"}, status=409)
    return JsonResponse({"status": "started", "message": "Trend scan started"}, status=202)
