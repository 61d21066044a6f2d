# utils/capacity.py
"""Class capacity rules. Nothing here touches the database; callers pass fresh counts."""


def admit(target_class, staged_count, committed_count):
    """True if one more student fits: committed + staged must be strictly below capacity."""
    return committed_count + staged_count < target_class.max_capacity


def capacity_status(max_capacity, total_count, warning_ratio=0.9):
    if total_count >= max_capacity:
        return 'full'
    if max_capacity > 0 and total_count / max_capacity >= warning_ratio:
        return 'warning'
    return 'normal'


def check_capacity(target_class, staged_count, committed_count, additional=1, warning_ratio=0.9):
    """Descriptive capacity report for dashboards and distribution views."""
    max_capacity = target_class.max_capacity
    current = committed_count + staged_count
    projected = current + additional
    available = max(0, max_capacity - current)
    at_threshold = current >= int(max_capacity * warning_ratio)
    exceeds = projected > max_capacity

    if exceeds:
        message = (f"Adding {additional} student(s) would exceed class capacity "
                   f"({projected}/{max_capacity})")
    elif at_threshold:
        message = f"Class is at or above {int(warning_ratio * 100)}% capacity ({current}/{max_capacity})"
    else:
        message = f"Class has {available} available slots ({current}/{max_capacity})"

    return {
        'class_id': target_class.class_id,
        'current_enrollment': current,
        'max_capacity': max_capacity,
        'projected_enrollment': projected,
        'available_slots': available,
        'at_threshold': at_threshold,
        'exceeds_capacity': exceeds,
        'message': message,
    }
