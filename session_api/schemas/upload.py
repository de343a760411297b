# =============================================================================================
# SESSION_API/SCHEMAS/UPLOAD.PY - PYDANTIC SCHEMA FOR THE UPLOAD RESPONSE
# =============================================================================================
# Field names go out in camelCase (fileName, originalName) through aliases.
# =============================================================================================

from pydantic import BaseModel, ConfigDict, Field


class UploadOut(BaseModel):
    """Accepted upload: public path of the stored file and the client's filename."""

    file_name: str = Field(..., alias="fileName", examples=["/uploads/3f2c9a...e1.png"])
    original_name: str = Field(..., alias="originalName", examples=["photo.png"])

    model_config = ConfigDict(populate_by_name=True)
