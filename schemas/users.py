from typing import Annotated, Optional

from pydantic import StringConstraints

from schemas.base import CamelModel

Required = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
# bcrypt only looks at the first 72 bytes
Password = Annotated[str, StringConstraints(min_length=6, max_length=72)]


class RegisterRequest(CamelModel):
    college_roll_no: Required
    full_name: Required
    student_phone: Required
    parent_phone: Required
    student_email: Required
    parent_email: Required
    student_class: Required
    password: Password
    id_photo_url: Optional[str] = None


class LoginRequest(CamelModel):
    college_roll_no: Required
    password: Required


class ProfileUpdateRequest(CamelModel):
    full_name: Optional[str] = None
    college_roll_no: Optional[str] = None
    student_phone: Optional[str] = None
    parent_phone: Optional[str] = None
    student_email: Optional[str] = None
    parent_email: Optional[str] = None
    student_class: Optional[str] = None
    id_photo_url: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[Password] = None


class UserOut(CamelModel):
    id: str
    college_roll_no: str
    full_name: str
    student_class: str
    student_phone: Optional[str] = None
    parent_phone: Optional[str] = None
    student_email: Optional[str] = None
    parent_email: Optional[str] = None
    id_photo_url: Optional[str] = None
    has_face_descriptor: bool = False
    is_active: bool = True
    created_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: dict) -> "UserOut":
        fields = {k: v for k, v in record.items() if k in cls.model_fields}
        fields["has_face_descriptor"] = bool(record.get("face_descriptor"))
        return cls(**fields)


class UserResponse(CamelModel):
    user: UserOut


class LoginResponse(CamelModel):
    user: UserOut
    token: str


class FaceDescriptorRequest(CamelModel):
    face_descriptor: list[float]


class FaceVerifyResponse(CamelModel):
    matched: bool
    similarity: float
    threshold: float
