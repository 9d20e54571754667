# src/goal_tracker/notifications/emails.py

"""HTML bodies and subjects for overdue reminders and streak milestones."""

from __future__ import annotations

from html import escape

from ..tasks.task_models import OverdueTaskRow, UserStreakRow

SIGNATURE = "The Goal Tracker Team"


def _days(n: int) -> str:
    return f"{n} day{'s' if n != 1 else ''}"


def next_goal_line(streak: int) -> str:
    for target in (30, 60, 90, 180):
        if streak < target:
            return f"Can you reach {target} days?"
    return "You're on track for a full year streak!"


def overdue_email(row: OverdueTaskRow) -> tuple[str, str]:
    subject = f"⏰ Task Overdue: {row.task_title}"
    title = escape(row.task_title)
    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h2 style="color: #dc2626; margin-bottom: 20px;">📋 Task Overdue Reminder</h2>
  <div style="background-color: #fef2f2; border-left: 4px solid #dc2626; padding: 16px; margin-bottom: 20px;">
    <h3 style="color: #991b1b; margin: 0 0 8px 0;">{title}</h3>
    <p style="margin: 0; color: #7f1d1d;">
      This task was due on <strong>{row.deadline.strftime("%b %d, %Y")}</strong>
      and is now <strong>{_days(row.days_overdue)} overdue</strong>.
    </p>
  </div>
  <div style="background-color: #f9fafb; padding: 16px; border-radius: 8px; margin-bottom: 20px;">
    <h4 style="margin: 0 0 8px 0; color: #374151;">What you can do:</h4>
    <ul style="margin: 0; padding-left: 20px; color: #6b7280;">
      <li>Mark the task as completed if you've finished it</li>
      <li>Update the deadline if you need more time</li>
      <li>Break down the task into smaller, manageable steps</li>
    </ul>
  </div>
  <p style="color: #6b7280; font-size: 14px; margin-top: 20px;">
    Stay on track with your goals! 🎯<br>
    {SIGNATURE}
  </p>
</div>
""".strip()
    return subject, html


def streak_email(row: UserStreakRow, *, threshold: float = 80.0) -> tuple[str, str]:
    n = row.current_streak
    subject = f"🔥 Congratulations! {n}-Day Streak Achieved!"
    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="text-align: center; margin-bottom: 30px;">
    <h1 style="color: #f59e0b; margin: 0; font-size: 32px;">🔥</h1>
    <h2 style="color: #d97706; margin: 8px 0;">Streak Achievement Unlocked!</h2>
  </div>
  <div style="background: linear-gradient(135deg, #f59e0b, #d97706); color: white; padding: 24px; border-radius: 12px; text-align: center; margin-bottom: 20px;">
    <h3 style="margin: 0 0 8px 0; font-size: 24px;">{n} Days Strong!</h3>
    <p style="margin: 0; opacity: 0.9;">You've maintained your goal completion streak for {n} consecutive days!</p>
  </div>
  <div style="background-color: #fffbeb; border: 1px solid #fde68a; padding: 16px; border-radius: 8px; margin-bottom: 20px;">
    <h4 style="margin: 0 0 8px 0; color: #92400e;">🎯 Your Achievement</h4>
    <p style="margin: 0; color: #a16207;">
      You've completed at least {threshold:g}% of your daily goals for
      <strong>{n} consecutive days</strong>.
    </p>
  </div>
  <div style="background-color: #f0fdf4; border: 1px solid #bbf7d0; padding: 16px; border-radius: 8px; margin-bottom: 20px;">
    <h4 style="margin: 0 0 8px 0; color: #166534;">🚀 Keep Going!</h4>
    <p style="margin: 0; color: #15803d;">
      You're building powerful habits. {next_goal_line(n)}
    </p>
  </div>
  <p style="color: #6b7280; font-size: 14px; margin-top: 20px; text-align: center;">
    Keep up the amazing work! 💪<br>
    {SIGNATURE}
  </p>
</div>
""".strip()
    return subject, html
