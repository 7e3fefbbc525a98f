from .matrix import Matrix, MatrixDomain, member_matrices  # noqa: F401
from .role import Role, member_roles  # noqa: F401
from .ministry import Ministry, WinnerPath  # noqa: F401
from .hierarchy import Celula, Discipulado, Rede, celula_leaders_in_training  # noqa: F401
from .member import Member  # noqa: F401
from .report import Report, report_attendances  # noqa: F401
from .refresh_token import RefreshToken  # noqa: F401
from .group import Group, GroupInvitation, GroupMember, GroupRole  # noqa: F401
from .category import Category, Subcategory  # noqa: F401
from .api_key import ApiKey  # noqa: F401
