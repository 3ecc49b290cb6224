from app.models.academic_year import AcademicYear, Term  # noqa: F401
from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.approval import ApprovalStatus, DerivedSubjectApproval  # noqa: F401
from app.models.assignment import AssignmentType, SubjectAssignment  # noqa: F401
from app.models.combination import InstitutionType, TeacherCombination  # noqa: F401
from app.models.school import Classroom, School, Stream  # noqa: F401
from app.models.selection_rule import IncompatibleSubjectPair, RuleType, SubjectSelectionRule  # noqa: F401
from app.models.subject import Subject  # noqa: F401
from app.models.teacher import Teacher  # noqa: F401
from app.models.timetable_period import DAYS_OF_WEEK, TimetablePeriod  # noqa: F401
