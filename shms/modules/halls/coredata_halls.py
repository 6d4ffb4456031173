"""The fixed catalogue of seminar halls, restored by the reset endpoint and seeded on startup"""

from shms.modules.halls import models_halls

PRESENTATION_AMENITIES = ["Projector", "Sound System", "Air Conditioning", "Podium"]


def get_default_halls() -> list[models_halls.Hall]:
    # A new list of objects is built on every call as sessions take ownership of added instances
    return [
        models_halls.Hall(
            id="1",
            name="Dr Abdul Kalam",
            capacity=200,
            description="Main auditorium named after Dr APJ Abdul Kalam",
            location="Main Building, Ground Floor",
            amenities=list(PRESENTATION_AMENITIES),
        ),
        models_halls.Hall(
            id="2",
            name="CV Raman",
            capacity=400,
            description="Large hall named after Nobel laureate CV Raman",
            location="Science Block, First Floor",
            amenities=list(PRESENTATION_AMENITIES),
        ),
        models_halls.Hall(
            id="3",
            name="Chaguveera",
            capacity=80,
            description="Intimate hall for smaller events and discussions",
            location="Student Center, Ground Floor",
            amenities=["Projector", "Sound System", "Air Conditioning"],
        ),
        models_halls.Hall(
            id="4",
            name="Newton Hall",
            capacity=200,
            description="Medium-sized hall named after Sir Isaac Newton",
            location="Science Block, Second Floor",
            amenities=["Projector", "Whiteboard", "Air Conditioning"],
        ),
        models_halls.Hall(
            id="5",
            name="R & D",
            capacity=150,
            description="Research and development hall with specialized equipment",
            location="R&D Block, Third Floor",
            amenities=["Projector", "Lab Equipment", "Air Conditioning"],
        ),
    ]
