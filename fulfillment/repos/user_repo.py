from sqlalchemy.orm import Session
from fulfillment.data.models.user import UserModel
from fulfillment.data.models.address import AddressModel


class UserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def get_address(self, address_id: int) -> AddressModel | None:
        return self.db.get(AddressModel, address_id)
