"""Role permission helper sets."""

from app.db.enums.auth import Role

# Roles allowed to use the inspection workflow at all
ROLES_APPROVED = {Role.USER, Role.ADMIN}

# Roles that can edit an inspection after it was submitted
ROLES_CAN_EDIT_SUBMITTED = {Role.ADMIN}

# Roles that can read any inspection (not only their own)
ROLES_CAN_VIEW_ALL_INSPECTIONS = {Role.ADMIN}

# Roles that can approve/reject users and change roles
ROLES_CAN_MANAGE_USERS = {Role.ADMIN}
