from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsStaffRole
from ..services.audit import log_action
from ..services.departments import recount_queues


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def recount_department_queues(request):
    """Rebuild department queue counters from the checkpoints actually waiting."""
    hospital_id = request.data.get('hospitalId') or request.query_params.get('hospitalId')
    changed = recount_queues(hospital_id)
    log_action(user=request.user, action='queue_recount', object_type='hospital', object_id=hospital_id,
               detail={'changed': len(changed)})
    return Response({'ok': True, 'changed': changed})
