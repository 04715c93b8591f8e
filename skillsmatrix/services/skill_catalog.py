"""
Curriculum reference data: HEM subjects, the skill names their source
documents use, and the aliases from document names to stored skill names.
"""
from __future__ import annotations

import dataclasses
from typing import Dict, List, Tuple


@dataclasses.dataclass(frozen=True)
class SubjectDefinition:
    code: str
    name: str
    level: str
    description: str
    # Skill names as they appear in the subject's documents
    document_skills: Tuple[str, ...]


SUBJECTS: List[SubjectDefinition] = [
    SubjectDefinition(
        code="HEM1103",
        name="Emergency Medical Technician - Basic Level",
        level="EMT-Basic",
        description="Foundational emergency medical technician skills and procedures",
        document_skills=(
            "Handwashing",
            "Basic Airway Maneuver",
            "Oropharyngeal Suctioning",
            "Bag Valve Mask (BVM) Ventilation",
            "OP Airway Insertion",
            "NP Airway Insertion",
            "Choking - Adult",
            "Basic Life Support with AED",
            "Recovery Position",
            "Nebulization",
            "Baseline Observations",
            "Hemoglucose Test (HGT)",
            "Pre-Alert (ASHICE)",
            "Bandage Application",
            "Splinting a Fracture",
            "Triangular Bandage Use",
            "Exsanguinating Hemorrhage",
        ),
    ),
    SubjectDefinition(
        code="HEM2105",
        name="Intermediate Paramedic Level (Airway Management)",
        level="Paramedic",
        description="Intermediate paramedic skills focusing on airway management techniques",
        document_skills=(
            "Supraglottic Airway Insertion (LMA/iGEL)",
            "Suctioning - ETT or SGA",
            "Intermediate Life Support - Adult",
        ),
    ),
    SubjectDefinition(
        code="HEM2024",
        name="Intermediate Paramedic Level (IV Access & Emergency Procedures)",
        level="Paramedic",
        description="Intermediate paramedic skills for IV access and emergency procedures",
        document_skills=(
            "Intravenous Cannulation (IV)",
            "Needle Thoracocentesis (Chest Decompression)",
            "Cervical Spine Clearance",
        ),
    ),
    SubjectDefinition(
        code="HEM2033",
        name="Intermediate Paramedic Level (Equipment & Drug Administration)",
        level="Paramedic",
        description="Intermediate paramedic skills for equipment use and drug administration",
        document_skills=(
            "Traction Splint",
            "Pelvic Binder Application",
            "Drug Administration",
        ),
    ),
    SubjectDefinition(
        code="HEM3006",
        name="Advanced Paramedic Level (Advanced Airway Management)",
        level="Advanced Paramedic",
        description="Advanced airway management techniques and procedures",
        document_skills=(
            "Predicting Difficult BVM Ventilations",
            "Predicting Difficult Intubation",
            "Intubation - Adult",
            "Orogastric & Nasogastric tube insertion",
            "Surgical Cricothyroidotomy (Front of Neck Access)",
            "External Jugular Vein Cannulation (EJVC)",
        ),
    ),
    SubjectDefinition(
        code="HEM3106",
        name="Advanced Paramedic Level (Advanced Life Support)",
        level="Advanced Paramedic",
        description="Advanced life support procedures for complex emergency situations",
        document_skills=(
            "Advanced Life Support Adult",
            "Advanced Life Support Infant",
            "Advanced Life Support Child",
            "Intraosseous Access",
            "Carotid Sinus Massage",
            "Valsalva Maneuver",
        ),
    ),
    SubjectDefinition(
        code="HEM4106",
        name="Advanced Paramedic Level (Advanced Cardiac & Respiratory Support)",
        level="Advanced Paramedic",
        description="Advanced cardiac and respiratory support techniques",
        document_skills=(
            "Synchronized Cardioversion",
            "Transcutaneous Pacing",
            "CPAP",
            "EtCO2",
            "Transport Ventilator",
            "Ventilator Alarm Troubleshooting",
        ),
    ),
]


# Document skill name -> stored skill name
KNOWN_ALIASES: Dict[str, str] = {
    "Handwashing": "Hand Washing",
    "Bag Valve Mask (BVM) Ventilation": "Bag Valve Mask Reservoir Ventilation - apneic patient",
    "OP Airway Insertion": "Oropharyngeal Tube Insertion",
    "NP Airway Insertion": "Insertion of Nasopharyngeal Airway",
    "Choking - Adult": "Adult Choking without the use of equipment",
    "Basic Life Support with AED": "Adult CPR with Manual defibrillator",
    "Nebulization": "Nebulization of Medication",
    "Baseline Observations": "Hgt",
    "Hemoglucose Test (HGT)": "Hgt",
    "Pre-Alert (ASHICE)": "Pre Hospital Update",
    "Bandage Application": "Application of a bandage",
    "Triangular Bandage Use": "Application of a Triangular Bandage",
    "Exsanguinating Hemorrhage": "BLEEDING CONTROL/SHOCK MANAGEMENT",
    "Supraglottic Airway Insertion (LMA/iGEL)": "Supraglottic Airway Insertion",
    "Suctioning - ETT or SGA": "Suctioning of the Endotracheal Tube",
    "Intermediate Life Support - Adult": "Adult CPR with Manual defibrillator",
    "Intravenous Cannulation (IV)": "Intravenous Cannulation",
    "Needle Thoracocentesis (Chest Decompression)": "Needle Thoracentesis",
    "Cervical Spine Clearance": "C Spine Clearance",
    "Predicting Difficult BVM Ventilations": "Prediction of difficult bag valve mask ventilations",
    "Predicting Difficult Intubation": "Prediction of difficult direct endotracheal intubation",
    "Intubation - Adult": "Adult Endotracheal Intubation (ETT)",
    "Orogastric & Nasogastric tube insertion": "Orogastric and Nasogastric Tube Insertion",
    "Surgical Cricothyroidotomy (Front of Neck Access)": "Surgical Crichothyroidotomy",
    "Advanced Life Support Adult": "Adult CPR with Manual defibrillator",
    "Advanced Life Support Infant": "INFANT CPR WITH MANUAL DEFIBRILLATOR",
    "Advanced Life Support Child": "PAEDIATRIC CPR WITH MANUAL DEFIBRILLATOR",
    "Intraosseous Access": "EZ-IO® Distal Tibia Insertion Technique",
    "Valsalva Maneuver": "Modified Valsalva Maneuver",
    "Synchronized Cardioversion": "SYNCHRONISED CARDIOVERSION",
    "Transcutaneous Pacing": "TRANSCUT ANEOUS PACING",
    "EtCO2": "ETCO2 monitoring",
    "Transport Ventilator": "Use of a transport ventilator",
    "Ventilator Alarm Troubleshooting": "Troubleshooting ventilator alarms",
}

# Categories whose incomplete critical skills are top priority
PRIORITY_CATEGORIES: Tuple[str, ...] = (
    "Basic Life Support (BLS)",
    "Advanced Life Support (ALS)",
)


def get_subject(code: str) -> SubjectDefinition:
    for subject in SUBJECTS:
        if subject.code == code:
            return subject
    raise KeyError(f"Unknown subject code: {code}")
