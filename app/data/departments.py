"""
Municipal departments that accept complaints, with the categories each one handles.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel


class Department(BaseModel):
    id: str
    name: str
    description: str
    categories: List[str]


DEPARTMENTS: List[Department] = [
    Department(
        id="transportation",
        name="Transportation",
        description="Roads, traffic, public transit, parking",
        categories=["Road Maintenance", "Traffic Signals", "Public Transit", "Parking", "Sidewalks"],
    ),
    Department(
        id="education",
        name="Education",
        description="Schools, educational facilities, programs",
        categories=["School Facilities", "Programs", "Safety", "Resources", "Staff"],
    ),
    Department(
        id="health",
        name="Health",
        description="Public health, sanitation, medical facilities",
        categories=["Sanitation", "Public Health", "Medical Facilities", "Emergency Services"],
    ),
    Department(
        id="environment",
        name="Environment",
        description="Parks, pollution, waste management, conservation",
        categories=["Pollution", "Waste Management", "Parks", "Conservation", "Noise"],
    ),
    Department(
        id="infrastructure",
        name="Infrastructure",
        description="Buildings, construction, zoning, permits",
        categories=["Buildings", "Construction", "Zoning", "Permits", "Utilities"],
    ),
    Department(
        id="utilities",
        name="Utilities",
        description="Water, electricity, gas, telecommunications",
        categories=["Water", "Electricity", "Gas", "Internet", "Phone"],
    ),
]

_BY_ID: Dict[str, Department] = {department.id: department for department in DEPARTMENTS}


def get_department(department_id: str) -> Optional[Department]:
    return _BY_ID.get((department_id or "").strip().lower())
