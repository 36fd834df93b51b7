"""Default onboarding catalog: paths, milestones, sandbox environments, tutorials."""

from app.schemas.milestone import Milestone
from app.schemas.onboarding import OnboardingPath
from app.schemas.sandbox import SandboxEnvironment, Tutorial

# ============================================================================
# Onboarding paths
# ============================================================================

DEFAULT_PATHS: list[OnboardingPath] = [
    OnboardingPath.model_validate(
        {
            "id": "path-developer",
            "name": "Individual Developer Onboarding",
            "description": "Getting started as an individual developer",
            "target_role": "developer",
            "estimated_duration": 45,
            "learning_objectives": [
                "Understand platform capabilities",
                "Complete first AI agent creation",
                "Learn collaboration features",
            ],
            "steps": [
                {
                    "id": "dev-welcome",
                    "title": "Welcome",
                    "description": "Introduction to the platform",
                    "step_type": "tutorial",
                    "step_order": 1,
                    "estimated_time": 5,
                    "content": {"type": "welcome", "media": ["welcome_video.mp4"]},
                },
                {
                    "id": "dev-profile",
                    "title": "Complete Your Profile",
                    "step_type": "setup",
                    "step_order": 2,
                    "estimated_time": 10,
                    "interactive_elements": [
                        {
                            "id": "full_name",
                            "type": "input",
                            "label": "Full name",
                            "required": True,
                            "validation": {"min_length": 2},
                        },
                        {
                            "id": "experience_level",
                            "type": "choice",
                            "label": "Experience level",
                            "required": True,
                            "options": [
                                {"value": "beginner"},
                                {"value": "intermediate"},
                                {"value": "expert"},
                            ],
                        },
                    ],
                },
                {
                    "id": "dev-first-agent",
                    "title": "Create Your First AI Agent",
                    "step_type": "exercise",
                    "step_order": 3,
                    "estimated_time": 20,
                    "interactive_elements": [
                        {
                            "id": "agent_code",
                            "type": "code",
                            "label": "Agent definition",
                            "required": True,
                            "validation": {"expected_output": "agent.deploy()"},
                        }
                    ],
                    "success_criteria": {"required_actions": ["agent_created"]},
                },
                {
                    "id": "dev-collaboration",
                    "title": "Explore Collaboration Features",
                    "step_type": "tutorial",
                    "step_order": 4,
                    "estimated_time": 10,
                    "is_required": False,
                },
            ],
        }
    ),
    OnboardingPath.model_validate(
        {
            "id": "path-admin",
            "name": "Team Administrator Onboarding",
            "target_role": "admin",
            "estimated_duration": 60,
            "learning_objectives": ["Set up organization workspace", "Invite team members"],
            "steps": [
                {
                    "id": "admin-org-setup",
                    "title": "Organization Setup Wizard",
                    "step_type": "setup",
                    "step_order": 1,
                    "estimated_time": 15,
                    "interactive_elements": [
                        {
                            "id": "org_name",
                            "type": "input",
                            "label": "Organization name",
                            "required": True,
                            "validation": {"min_length": 3},
                        },
                        {
                            "id": "org_template",
                            "type": "choice",
                            "label": "Template",
                            "required": True,
                            "options": [
                                {"value": "startup"},
                                {"value": "enterprise"},
                                {"value": "agency"},
                            ],
                        },
                    ],
                },
                {
                    "id": "admin-invite",
                    "title": "Team Invitation and Roles",
                    "step_type": "setup",
                    "step_order": 2,
                    "estimated_time": 20,
                    "success_criteria": {"required_actions": ["team_invited"]},
                },
                {
                    "id": "admin-billing",
                    "title": "Billing and Subscription Setup",
                    "step_type": "setup",
                    "step_order": 3,
                    "estimated_time": 15,
                    "is_required": False,
                    "success_criteria": {"required_actions": ["plan_selected"]},
                },
                {
                    "id": "admin-dashboard",
                    "title": "Organization Dashboard Tour",
                    "step_type": "tutorial",
                    "step_order": 4,
                    "estimated_time": 10,
                },
            ],
        }
    ),
    OnboardingPath.model_validate(
        {
            "id": "path-member",
            "name": "Team Member Onboarding",
            "target_role": "member",
            "estimated_duration": 30,
            "steps": [
                {
                    "id": "member-welcome",
                    "title": "Welcome to Your Team",
                    "step_type": "tutorial",
                    "step_order": 1,
                    "estimated_time": 5,
                },
                {
                    "id": "member-collaboration",
                    "title": "Team Collaboration Basics",
                    "step_type": "tutorial",
                    "step_order": 2,
                    "estimated_time": 15,
                },
                {
                    "id": "member-first-project",
                    "title": "Your First Team Project",
                    "step_type": "exercise",
                    "step_order": 3,
                    "estimated_time": 10,
                    "success_criteria": {"required_actions": ["project_contributed"]},
                },
            ],
        }
    ),
    OnboardingPath.model_validate(
        {
            "id": "path-enterprise",
            "name": "Enterprise Onboarding",
            "target_role": "enterprise",
            "subscription_tier": "enterprise",
            "estimated_duration": 90,
            "steps": [
                {
                    "id": "ent-security",
                    "title": "Enterprise Security Configuration",
                    "step_type": "setup",
                    "step_order": 1,
                    "estimated_time": 30,
                    "success_criteria": {"required_actions": ["sso_configured"]},
                },
                {
                    "id": "ent-integrations",
                    "title": "Advanced Integrations Setup",
                    "step_type": "setup",
                    "step_order": 2,
                    "estimated_time": 25,
                    "is_required": False,
                },
                {
                    "id": "ent-governance",
                    "title": "Team Scaling and Governance",
                    "step_type": "tutorial",
                    "step_order": 3,
                    "estimated_time": 15,
                },
            ],
        }
    ),
]


# ============================================================================
# Milestones
# ============================================================================

DEFAULT_MILESTONES: list[Milestone] = [
    Milestone.model_validate(m)
    for m in [
        {
            "id": "first-steps",
            "name": "First Steps",
            "description": "Complete your first onboarding step",
            "milestone_type": "progress",
            "criteria": {"kind": "steps_completed", "steps_completed": 1},
            "reward": {"points": 10, "badge": "first_steps", "title": "Getting Started"},
        },
        {
            "id": "halfway",
            "name": "Halfway There",
            "description": "Reach 50% of your onboarding path",
            "milestone_type": "progress",
            "criteria": {"kind": "progress_percentage", "progress_percentage": 50},
            "reward": {"points": 20, "badge": "halfway"},
        },
        {
            "id": "first-agent",
            "name": "First Agent",
            "description": "Create your first AI agent",
            "milestone_type": "achievement",
            "criteria": {"kind": "flags", "flags": ["agent_created"]},
            "reward": {"points": 50, "badge": "first_agent", "title": "Agent Creator"},
        },
        {
            "id": "high-scorer",
            "name": "High Scorer",
            "description": "Average at least 90% across scored steps",
            "milestone_type": "achievement",
            "criteria": {"kind": "score", "minimum_score": 90},
            "reward": {"points": 25, "badge": "high_scorer"},
        },
        {
            "id": "speed-runner",
            "name": "Speed Runner",
            "description": "Complete onboarding in under 30 minutes",
            "milestone_type": "time_based",
            "criteria": {"kind": "time_limit", "max_time_minutes": 30, "completion_required": True},
            "reward": {"points": 75, "badge": "speed_runner", "title": "Quick Learner"},
        },
        {
            "id": "graduate",
            "name": "Onboarding Graduate",
            "description": "Complete the entire onboarding journey",
            "milestone_type": "completion",
            "criteria": {
                "kind": "progress_percentage",
                "progress_percentage": 100,
                "all_required_steps": True,
            },
            "reward": {"points": 100, "badge": "graduate", "title": "Onboarding Graduate"},
        },
    ]
]


# ============================================================================
# Sandbox
# ============================================================================

DEFAULT_ENVIRONMENTS: list[SandboxEnvironment] = [
    SandboxEnvironment(
        id="auth-tutorial",
        name="Authentication Tutorial",
        description="Learn sign-in and sign-up processes",
        features=["sign-in", "sign-up", "profile-setup"],
        reset_on_exit=True,
        time_limit=30 * 60,
        default_tutorial_id="auth-basics",
    ),
    SandboxEnvironment(
        id="org-setup",
        name="Organization Setup",
        description="Practice creating and configuring organizations",
        features=["create-org", "invite-members", "configure-settings"],
        reset_on_exit=True,
        time_limit=45 * 60,
    ),
    SandboxEnvironment(
        id="feature-demo",
        name="Feature Demonstration",
        description="Explore platform features safely",
        features=["all-features"],
        reset_on_exit=False,
        time_limit=60 * 60,
    ),
]

DEFAULT_TUTORIALS: list[Tutorial] = [
    Tutorial.model_validate(
        {
            "id": "auth-basics",
            "title": "Authentication Basics",
            "description": "Learn how to sign in to the platform",
            "category": "authentication",
            "estimated_time": 10,
            "steps": [
                {
                    "id": "navigate-signin",
                    "title": "Navigate to Sign In",
                    "description": "Click the Sign In button in the header",
                    "action": "click",
                    "target": "sign-in-button",
                    "hints": ["Look for the Sign In button in the top navigation"],
                },
                {
                    "id": "enter-email",
                    "title": "Enter Email",
                    "action": "input",
                    "target": "email-input",
                    "expected_value": "demo@example.com",
                    "hints": ["Use the demo email: demo@example.com"],
                },
                {
                    "id": "enter-password",
                    "title": "Enter Password",
                    "action": "input",
                    "target": "password-input",
                    "expected_value": "demo123",
                    "hints": ["Use the demo password: demo123"],
                },
                {
                    "id": "submit-signin",
                    "title": "Submit Sign In",
                    "action": "click",
                    "target": "submit-button",
                    "hints": ["Click the Sign In button to complete authentication"],
                },
            ],
            "completion_criteria": ["User successfully signed in", "Redirected to dashboard"],
        }
    ),
    Tutorial.model_validate(
        {
            "id": "signup-process",
            "title": "Sign Up Process",
            "description": "Learn how to create a new account",
            "category": "authentication",
            "estimated_time": 15,
            "steps": [
                {
                    "id": "navigate-signup",
                    "title": "Navigate to Sign Up",
                    "action": "click",
                    "target": "sign-up-button",
                },
                {
                    "id": "enter-signup-email",
                    "title": "Enter Email",
                    "action": "input",
                    "target": "email-input",
                    "validation": {"kind": "contains", "substring": "@"},
                    "error_message": "Enter a valid email address",
                },
                {
                    "id": "enter-signup-password",
                    "title": "Create Password",
                    "action": "input",
                    "target": "password-input",
                    "validation": {"kind": "min_length", "min_length": 8},
                    "error_message": "Password must be at least 8 characters long",
                },
                {
                    "id": "submit-signup",
                    "title": "Create Account",
                    "action": "click",
                    "target": "submit-button",
                },
            ],
            "completion_criteria": ["Account created successfully"],
        }
    ),
]
