"""
Department catalogue endpoints.
"""

from typing import List

from fastapi import APIRouter, HTTPException, status

from app.data.departments import DEPARTMENTS, Department, get_department

router = APIRouter(prefix="/departments", tags=["Departments"])


@router.get("", response_model=List[Department])
async def list_departments():
    return DEPARTMENTS


@router.get("/{department_id}", response_model=Department)
async def department_detail(department_id: str):
    department = get_department(department_id)
    if department is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Department {department_id} not found"
        )
    return department
