from app.models.user import User, ApiLog
from app.models.tour import Tour, Participant
from app.models.equipment import Material, MaterialReservation
from app.models.community import Post, Comment, Document
