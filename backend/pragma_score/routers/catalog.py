from fastapi import APIRouter, HTTPException

from ..catalog import DIMENSION_LABELS, catalog_as_dict, get_section_by_id, total_question_count

router = APIRouter(prefix="/questions", tags=["catalog"])

_CATALOG = catalog_as_dict()


@router.get("")
def get_catalog():
	return {
		"sections": _CATALOG,
		"total_questions": total_question_count(),
		"dimensions": [{"key": d.value, "label": label} for d, label in DIMENSION_LABELS.items()],
	}


@router.get("/{section_id}")
def get_section(section_id: str):
	if get_section_by_id(section_id) is None:
		raise HTTPException(status_code=404, detail="Section not found")
	for section in _CATALOG:
		if section["id"] == section_id:
			return section
