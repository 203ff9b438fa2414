"""
Mapping from HEMIS student records to local Student column values.
"""

from typing import Any, Dict, Optional


# HEMIS key -> Student column, for sub-objects stored unchanged
PASSTHROUGH_FIELDS = {
    'gender': 'gender',
    'specialty': 'specialty',
    'group': 'group',
    'level': 'level',
    'semester': 'semester',
    'educationYear': 'education_year',
    'educationType': 'education_type',
    'educationForm': 'education_form',
    'paymentForm': 'payment_form',
    'studentStatus': 'student_status',
}

SCALAR_FIELDS = (
    'meta_id',
    'student_id_number',
    'full_name',
    'short_name',
    'first_name',
    'second_name',
    'third_name',
    'birth_date',
    'image',
    'year_of_enter',
)


def _format_department(department: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(department, dict):
        return None
    return {
        'id': department.get('id'),
        'name': department.get('name'),
        'code': department.get('code'),
        'structureType': department.get('structureType'),
    }


def format_student_data(hemis_student: Dict[str, Any]) -> Dict[str, Any]:
    """Transform a HEMIS student item into Student column values.

    Missing optional fields become None; nothing here raises on absent keys.
    """
    record = {'hemis_id': hemis_student.get('id')}

    for field in SCALAR_FIELDS:
        record[field] = hemis_student.get(field)

    record['email'] = hemis_student.get('email') or ""
    record['department'] = _format_department(hemis_student.get('department'))

    for hemis_field, column in PASSTHROUGH_FIELDS.items():
        record[column] = hemis_student.get(hemis_field)

    return record
